"""Collaborators shared by the automation engine for one process."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from backend.app.core.settings import Settings, get_settings
from backend.app.core.time import utc_now
from backend.app.services.broadcast import BroadcastNotifier
from backend.app.services.funnels import FunnelPlayer
from backend.app.services.message_sink import HttpMessageSink, MessageSink


@dataclass
class EngineServices:
    message_sink: MessageSink
    broadcaster: BroadcastNotifier
    funnel_player: FunnelPlayer
    settings: Settings = field(default_factory=get_settings)
    clock: Callable[[], datetime] = utc_now

    def close(self) -> None:
        self.funnel_player.shutdown(wait=False)
        self.broadcaster.close()
        close_sink = getattr(self.message_sink, "close", None)
        if close_sink is not None:
            close_sink()


def build_engine_services(settings: Settings) -> EngineServices:
    sink = HttpMessageSink(settings.message_sink_url, timeout=settings.message_sink_timeout_seconds)
    return EngineServices(
        message_sink=sink,
        broadcaster=BroadcastNotifier(settings.broadcast_url, timeout=settings.broadcast_timeout_seconds),
        funnel_player=FunnelPlayer(
            sink,
            executor=ThreadPoolExecutor(max_workers=settings.funnel_workers, thread_name_prefix="funnel"),
        ),
        settings=settings,
    )


_engine_services = None


def get_engine_services() -> EngineServices:
    """Return the process-wide EngineServices, built lazily from settings."""
    global _engine_services
    if _engine_services is None:
        _engine_services = build_engine_services(get_settings())
    return _engine_services


def shutdown_engine_services() -> None:
    global _engine_services
    if _engine_services is not None:
        _engine_services.close()
        _engine_services = None
