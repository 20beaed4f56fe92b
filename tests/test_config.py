from __future__ import annotations

from pathlib import Path

import pytest

from matchsetup.core import config


def test_defaults_without_env() -> None:
    settings = config.load_settings({})
    assert settings.session_ttl == 1800
    assert settings.reaper_interval == 30
    assert settings.store_dir is None
    assert settings.map_pool is None
    assert settings.log_level == "INFO"
    assert settings.deadlines_enabled


def test_env_values_and_bad_input() -> None:
    settings = config.load_settings(
        {
            "MATCHSETUP_SESSION_TTL": "0",
            "MATCHSETUP_REAPER_INTERVAL": "soon",
            "MATCHSETUP_STORE_DIR": "/tmp/setups",
            "MATCHSETUP_LOG_LEVEL": "debug",
        }
    )
    assert settings.session_ttl == 0
    assert not settings.deadlines_enabled
    assert settings.reaper_interval == 30
    assert settings.store_dir == Path("/tmp/setups")
    assert settings.log_level == "DEBUG"


def test_override_stack() -> None:
    with config.override(session_ttl=5):
        assert config.load_settings({}).session_ttl == 5
        with config.override(reaper_interval=1):
            settings = config.load_settings({})
            assert (settings.session_ttl, settings.reaper_interval) == (5, 1)
        assert config.load_settings({}).reaper_interval == 30
    assert config.load_settings({}).session_ttl == 1800


def test_override_rejects_unknown_fields() -> None:
    with pytest.raises(TypeError):
        with config.override(ttl=5):
            pass
