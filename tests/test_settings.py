from backend.app.core.settings import Settings, get_settings


def test_settings_defaults():
    settings = get_settings()
    assert settings.app_name == "Pipeline Automations"
    assert settings.environment == "development"
    assert isinstance(settings.database_url, str) and settings.database_url
    assert settings.business_hours_timezone == "America/Sao_Paulo"
    assert settings.max_move_depth > 0


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("BROADCAST_URL", "http://realtime.local/broadcast")
    monkeypatch.setenv("LEDGER_CLAIM_TTL_MINUTES", "5")
    monkeypatch.setenv("MESSAGE_SINK_TIMEOUT_SECONDS", "2.5")
    settings = Settings()
    assert settings.broadcast_url == "http://realtime.local/broadcast"
    assert settings.ledger_claim_ttl_minutes == 5
    assert settings.message_sink_timeout_seconds == 2.5
