from __future__ import annotations

from transat.runtime.telemetry import TelemetrySettings


def test_settings_defaults_without_environment() -> None:
    settings = TelemetrySettings.from_env({})

    assert settings == TelemetrySettings()
    assert settings.buffer_size is None


def test_settings_read_prefixed_variables() -> None:
    settings = TelemetrySettings.from_env(
        {
            "TRANSAT_LOG_LEVEL": "debug",
            "TRANSAT_DISABLE_CONSOLE": "yes",
            "TRANSAT_LOG_JSON": "1",
            "TRANSAT_LOG_FILE": "/tmp/transat.log",
            "TRANSAT_LOG_BUFFERED": "on",
            "TRANSAT_LOG_BUFFER_SIZE": "64",
            "TRANSAT_LOGGER": "client",
        }
    )

    assert settings.level == "DEBUG"
    assert settings.console is False
    assert settings.json is True
    assert settings.log_file == "/tmp/transat.log"
    assert settings.buffer_size == 64
    assert settings.logger_name == "client"


def test_buffer_size_ignored_unless_buffering_enabled() -> None:
    settings = TelemetrySettings.from_env({"TRANSAT_LOG_BUFFER_SIZE": "64"})

    assert settings.buffer_size is None
