"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from hotelops.config import Settings

SECRETS = {
    "stripe_webhook_secret": "whsec_x",
    "chapa_webhook_secret": "chapa_x",
    "bank_transfer_webhook_secret": "bank_x",
}


def test_weekend_days_default_friday_saturday():
    assert Settings(**SECRETS).weekend_days == [4, 5]


def test_weekend_days_out_of_range_rejected():
    with pytest.raises(ValidationError):
        Settings(weekend_days=[5, 7], **SECRETS)


def test_production_requires_webhook_secrets():
    secrets = {**SECRETS, "stripe_webhook_secret": ""}
    with pytest.raises(ValidationError):
        Settings(environment="production", **secrets)


def test_development_warns_on_missing_secret():
    with pytest.warns(UserWarning, match="chapa"):
        Settings(environment="development", **{**SECRETS, "chapa_webhook_secret": ""})


def test_webhook_secret_lookup():
    settings = Settings(**SECRETS)
    assert settings.webhook_secret("bank_transfer") == "bank_x"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@db/hotel", "postgresql+asyncpg://u:p@db/hotel"),
        ("postgresql://u:p@db/hotel", "postgresql+asyncpg://u:p@db/hotel"),
        ("postgresql+asyncpg://u:p@db/hotel", "postgresql+asyncpg://u:p@db/hotel"),
        ("sqlite+aiosqlite:///./hotel.db", "sqlite+aiosqlite:///./hotel.db"),
    ],
)
def test_async_database_url(url, expected):
    assert Settings(database_url=url, **SECRETS).async_database_url == expected
