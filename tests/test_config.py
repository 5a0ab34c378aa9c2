import importlib

import pytest

from vibe_ops import config


def test_defaults():
    assert config.VERIFY_MAX_ATTEMPTS == 2
    assert config.VERIFY_RETRY_DELAY_SECONDS == 0.05


def test_invalid_attempts_raise(monkeypatch):
    monkeypatch.setenv("VIBE_OPS_VERIFY_MAX_ATTEMPTS", "0")

    with pytest.raises(ValueError, match="VIBE_OPS_VERIFY_MAX_ATTEMPTS"):
        importlib.reload(config)

    monkeypatch.delenv("VIBE_OPS_VERIFY_MAX_ATTEMPTS")
    importlib.reload(config)


def test_invalid_delay_raises(monkeypatch):
    monkeypatch.setenv("VIBE_OPS_VERIFY_RETRY_DELAY_SECONDS", "soon")

    with pytest.raises(ValueError, match="must be a number"):
        importlib.reload(config)

    monkeypatch.delenv("VIBE_OPS_VERIFY_RETRY_DELAY_SECONDS")
    importlib.reload(config)
