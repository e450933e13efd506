"""
Unit Tests for Application Settings Configuration

Tests for:
- Default values of every settings group
- Validation of out-of-range values
- CORS origin parsing
- Log level validation
- Settings caching and clearing
"""

import pytest
from pydantic import ValidationError

from listen_together.config.settings import (
    AuthSettings,
    PlaybackSettings,
    PresenceSettings,
    QueueSettings,
    ResolverSettings,
    ServerSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)


class TestServerSettings:
    def test_defaults(self):
        server = ServerSettings()

        assert (server.host, server.port) == ("0.0.0.0", 3001)
        assert server.cors_origins == ("*",)

    def test_comma_separated_origins(self):
        server = ServerSettings(cors_origins="http://a.test, http://b.test,")

        assert server.cors_origins == ("http://a.test", "http://b.test")

    def test_allowed_origins_alias(self):
        assert ServerSettings(allowed_origins=["http://a.test"]).cors_origins == ("http://a.test",)

    def test_port_range(self):
        with pytest.raises(ValidationError):
            ServerSettings(port=70000)


class TestGroupDefaults:
    def test_auth(self):
        auth = AuthSettings()

        assert auth.identity_url == "https://discord.com/api/users/@me"
        assert auth.timeout_seconds == 5.0
        assert auth.cache_ttl_seconds == 3600

    def test_playback(self):
        playback = PlaybackSettings()

        assert playback.track_ended_dedup_seconds == 5.0
        assert playback.drift_tolerance_seconds == 1.0
        assert playback.end_threshold_seconds == 0.5

    def test_queue(self):
        queue = QueueSettings()

        assert queue.per_user_limit == 20
        assert queue.resolve_max_attempts == 3
        assert queue.resolve_base_delay_seconds == 2.0
        assert queue.resolve_timeout_seconds == 15.0

    def test_presence_and_resolver(self):
        assert PresenceSettings().grace_period_seconds == 300.0
        assert ResolverSettings().ytdlp_format == "bestaudio/best"

    def test_frozen(self):
        queue = QueueSettings()

        with pytest.raises(ValidationError):
            queue.per_user_limit = 5

    @pytest.mark.parametrize("limit", [0, 1001])
    def test_per_user_limit_range(self, limit):
        with pytest.raises(ValidationError):
            QueueSettings(per_user_limit=limit)


class TestSettings:
    def test_log_level_upper_cased(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="staging")

    def test_nested_groups(self):
        settings = Settings(queue=QueueSettings(per_user_limit=5))

        assert settings.queue.per_user_limit == 5
        assert settings.playback == PlaybackSettings()

    def test_string_env_value(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")

        assert Settings().log_level == "WARNING"


class TestSettingsCache:
    def test_cached_until_cleared(self):
        clear_settings_cache()
        first = get_settings()

        assert get_settings() is first
        clear_settings_cache()
        assert get_settings() is not first
        clear_settings_cache()
