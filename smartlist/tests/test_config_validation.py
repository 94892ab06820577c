import logging

import pytest

from smartlist.core.config import Settings, cors_origins, validate_config


def test_defaults_are_valid():
    assert validate_config(strict=True, settings_obj=Settings()) is True


def test_invalid_values_warn_in_non_strict_mode(caplog):
    cfg = Settings(SYNC_CREATE_ATTEMPTS=0, LEADERBOARD_DEFAULT_LIMIT=500)

    with caplog.at_level(logging.WARNING, logger="smartlist"):
        assert validate_config(strict=False, settings_obj=cfg) is False

    assert "SYNC_CREATE_ATTEMPTS" in caplog.text
    assert "LEADERBOARD_DEFAULT_LIMIT" in caplog.text


def test_invalid_values_raise_in_strict_mode():
    cfg = Settings(SYNC_RETRY_BASE_SECONDS=-1)

    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=cfg)


def test_cors_origins_split():
    cfg = Settings(CORS_ORIGINS="http://a.test, http://b.test,,")
    assert cors_origins(cfg) == ["http://a.test", "http://b.test"]
