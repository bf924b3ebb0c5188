"""Trigger and action vocabularies plus helpers for their JSON config blobs.

Automations are configured through surfaces outside this service and older
rows still carry the legacy Portuguese type names, so everything that reads a
trigger or action type goes through the normalizers here.
"""

import json
import logging
import math
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class TriggerKind(str, Enum):
    ENTERED_COLUMN = "entered_column"
    LEFT_COLUMN = "left_column"
    TIME_IN_COLUMN = "time_in_column"


TRIGGER_ALIASES = {
    "entered_column": TriggerKind.ENTERED_COLUMN,
    "enter_column": TriggerKind.ENTERED_COLUMN,
    "left_column": TriggerKind.LEFT_COLUMN,
    "leave_column": TriggerKind.LEFT_COLUMN,
    "time_in_column": TriggerKind.TIME_IN_COLUMN,
    "tempo_na_coluna": TriggerKind.TIME_IN_COLUMN,
}

ACTION_ALIASES = {
    "mover_coluna": "move_to_column",
    "adicionar_tag": "add_tag",
    "remover_tag": "remove_tag",
    "enviar_mensagem": "send_message",
    "remover_agente": "remove_agent",
    "atribuir_responsavel": "assign_responsible",
}

UNIT_MINUTES = {
    "seconds": 1 / 60,
    "minutes": 1,
    "hours": 60,
    "days": 1440,
}


def load_config(raw: Any) -> dict:
    """Return a config blob as a dict; JSON strings are parsed, junk becomes {}."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unparseable config blob: %r", raw)
            return {}
        return parsed if isinstance(parsed, dict) else {}
    logger.warning("Ignoring config blob of type %s", type(raw).__name__)
    return {}


def normalize_trigger_type(value: Optional[str]) -> Optional[TriggerKind]:
    if not value:
        return None
    return TRIGGER_ALIASES.get(value.strip().lower())


def normalize_action_type(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    return ACTION_ALIASES.get(normalized, normalized)


def threshold_minutes(trigger_config: Any) -> Optional[float]:
    """Normalize a time_in_column trigger config to minutes.

    Accepts ``{"time_value", "time_unit"}``, a bare ``time_value`` (minutes) and
    the legacy ``time_in_minutes`` key. Returns None when nothing usable is set.
    """
    config = load_config(trigger_config)
    if config.get("time_value") not in (None, ""):
        raw_value = config["time_value"]
        unit = config.get("time_unit") or "minutes"
    elif config.get("time_in_minutes") not in (None, ""):
        raw_value = config["time_in_minutes"]
        unit = "minutes"
    else:
        return None

    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        logger.warning("Invalid time value %r in trigger config", raw_value)
        return None
    if not math.isfinite(value):
        logger.warning("Non-finite time value %r in trigger config", raw_value)
        return None

    factor = UNIT_MINUTES.get(unit)
    if factor is None:
        logger.warning("Unknown time unit %r, treating as minutes", unit)
        factor = 1
    return value * factor
