"""
Tests for monitor and client settings.
"""
from jobs_monitor.config import HIRING_LINK_PREFIX, ClientSettings, MonitorSettings


class TestMonitorSettings:
    """Tests for backend settings."""

    def test_defaults(self):
        """Defaults match the backend's documented values."""
        settings = MonitorSettings()
        assert settings.port == 8002
        assert settings.refresh_interval_ms == 30000
        assert settings.profile_selectors == ("Profile 11",)
        assert settings.ping_interval == 30.0
        assert settings.link_prefix == HIRING_LINK_PREFIX

    def test_from_env(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("MONITOR_PORT", "9000")
        monkeypatch.setenv("MONITOR_PROFILES", "Profile 1, Profile 2")
        monkeypatch.setenv("MONITOR_CORS_ORIGINS", "http://a.test,http://b.test")
        monkeypatch.setenv("MONITOR_LOG_JSON", "true")

        settings = MonitorSettings.from_env()

        assert settings.port == 9000
        assert settings.profile_selectors == ("Profile 1", "Profile 2")
        assert settings.cors_origins == ("http://a.test", "http://b.test")
        assert settings.log_json is True

    def test_to_dict(self):
        """to_dict() should use lists."""
        data = MonitorSettings().to_dict()
        assert data["profile_selectors"] == ["Profile 11"]
        assert data["cors_origins"] == ["*"]


class TestClientSettings:
    """Tests for client settings."""

    def test_defaults(self):
        """Timeouts and retry ceiling defaults."""
        settings = ClientSettings()
        assert settings.max_retries == 10
        assert settings.status_timeout == 5.0
        assert settings.control_timeout == 10.0
        assert settings.heartbeat_interval == 30.0
        assert settings.initial_status_delay == 3.0

    def test_ws_url_derived_from_api_url(self, monkeypatch):
        """The channel URL follows the API URL."""
        monkeypatch.delenv("MONITOR_WS_URL", raising=False)
        monkeypatch.setenv("MONITOR_API_URL", "https://monitor.example.com/")

        settings = ClientSettings.from_env()

        assert settings.api_url == "https://monitor.example.com"
        assert settings.ws_url == "wss://monitor.example.com/ws"
