"""Dwell scan response schema."""

from typing import Any

from pydantic import BaseModel


class ScanResponse(BaseModel):
    success: bool = True
    checked_cards: int
    executed_automations: int
    errors: int
    results: list[dict[str, Any]] = []
