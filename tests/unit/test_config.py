"""Unit tests for configuration validation (fail fast at startup)"""

import pytest
from unittest.mock import MagicMock
from pydantic import ValidationError

from billing_gateway.config import Settings
from billing_gateway.domain.exceptions import InvalidConfigurationError
from billing_gateway.infrastructure.scheduling.debits_scheduler import DebitsScheduler, build_scheduler


def test_settings_defaults():
    config = Settings(_env_file=None)

    assert config.number_of_debits > 0
    assert config.debits_cycle_period_ms > 0


@pytest.mark.parametrize("number_of_debits", [0, -3])
def test_settings_reject_non_positive_number_of_debits(number_of_debits: int):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, number_of_debits=number_of_debits)


def test_settings_reject_non_positive_period():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, debits_cycle_period_ms=0)


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("NUMBER_OF_DEBITS", "6")
    monkeypatch.setenv("DEBITS_CYCLE_PERIOD_MS", "250")

    config = Settings(_env_file=None)

    assert config.number_of_debits == 6
    assert config.debits_cycle_period_ms == 250


@pytest.mark.parametrize("number_of_debits, period_ms", [(0, 1000), (3, 0)])
def test_scheduler_rejects_invalid_configuration(number_of_debits: int, period_ms: int):
    with pytest.raises(InvalidConfigurationError):
        DebitsScheduler(session_factory=MagicMock(), number_of_debits=number_of_debits, period_ms=period_ms)


def test_build_scheduler_without_webhook():
    config = Settings(_env_file=None, number_of_debits=4, debits_cycle_period_ms=500, performer_webhook_url=None)

    scheduler = build_scheduler(config, MagicMock())

    assert scheduler.number_of_debits == 4
    assert scheduler.period_seconds == 0.5
    assert scheduler.performer_client is None


def test_build_scheduler_with_webhook():
    config = Settings(_env_file=None, performer_webhook_url="http://performer.local/hooks/debits")

    scheduler = build_scheduler(config, MagicMock())

    assert scheduler.performer_client is not None
    assert scheduler.performer_client.webhook_url == "http://performer.local/hooks/debits"
