import os


class Settings:
    def __init__(self):
        self.app_name = "Pipeline Automations"
        self.api_version = "1.0.0"
        self.environment = os.getenv("APP_ENV", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./pipeline_automations.db")
        # Outbound message dispatch (opaque HTTP sink)
        self.message_sink_url = os.getenv("MESSAGE_SINK_URL", "http://localhost:8001/send-message")
        self.message_sink_timeout_seconds = float(os.getenv("MESSAGE_SINK_TIMEOUT_SECONDS", "15"))
        # Realtime broadcast; empty disables publishing
        self.broadcast_url = os.getenv("BROADCAST_URL", "")
        self.broadcast_timeout_seconds = float(os.getenv("BROADCAST_TIMEOUT_SECONDS", "5"))
        self.business_hours_timezone = os.getenv("BUSINESS_HOURS_TIMEZONE", "America/Sao_Paulo")
        self.ledger_claim_ttl_minutes = int(os.getenv("LEDGER_CLAIM_TTL_MINUTES", "30"))
        self.max_move_depth = int(os.getenv("MAX_MOVE_DEPTH", "5"))
        self.funnel_workers = int(os.getenv("FUNNEL_WORKERS", "4"))


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
