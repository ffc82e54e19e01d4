"""
Tests for environment-driven settings.
"""


class TestSettings:
    def test_defaults(self):
        from trellis.config import Settings

        settings = Settings.from_env({})

        assert settings.host == "127.0.0.1"
        assert settings.port == 4567
        assert settings.log_level == "INFO"
        assert settings.websocket_path == "/websocket"
        assert settings.max_message_bytes == 1024 * 1024

    def test_environment_overrides(self):
        from trellis.config import Settings

        settings = Settings.from_env({
            "TRELLIS_HOST": "0.0.0.0",
            "TRELLIS_PORT": "8080",
            "TRELLIS_LOG_LEVEL": "debug",
            "TRELLIS_TITLE": "Demo",
            "TRELLIS_HEARTBEAT_S": "5",
        })

        assert settings.host == "0.0.0.0"
        assert settings.port == 8080
        assert settings.log_level == "DEBUG"
        assert settings.title == "Demo"
        assert settings.heartbeat_s == 5

    def test_invalid_int_falls_back(self, caplog):
        """A non-numeric port should log a warning and keep the default."""
        from trellis.config import Settings

        settings = Settings.from_env({"TRELLIS_PORT": "eighty"})

        assert settings.port == 4567
        assert "TRELLIS_PORT" in caplog.text
