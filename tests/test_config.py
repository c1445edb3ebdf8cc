"""
Tests for settings validation.
"""
from pydantic import ValidationError
import pytest

from content_hub.config import Settings

BASE = {"SECRET_KEY": "unit-test-signing-key-5f2a9c", "MONGODB_URL": "mongodb://localhost:27017"}


@pytest.mark.parametrize("secret", ["", "   ", "change-me", "your_secret_key", "00000000"])
def test_placeholder_secret_is_rejected(secret):
    with pytest.raises(ValidationError):
        Settings(**{**BASE, "SECRET_KEY": secret})


def test_mongodb_url_is_required():
    with pytest.raises(ValidationError):
        Settings(**{**BASE, "MONGODB_URL": " "})


@pytest.mark.parametrize("field", ["WORKFLOW_TIMEOUT_SECONDS", "IMAGE_SERVICE_TIMEOUT_SECONDS"])
@pytest.mark.parametrize("value", [0, 0.5, 301])
def test_collaborator_timeouts_are_bounded(field, value):
    with pytest.raises(ValidationError):
        Settings(**{**BASE, field: value})


def test_derived_properties():
    settings = Settings(
        **BASE,
        CORS_ORIGINS=" https://app.example.com, ,http://localhost:3000 ",
        N8N_WEBHOOK_PUBLISH="https://workflows.test/publish",
        DEBUG=False,
    )

    assert settings.cors_origins_list == ["https://app.example.com", "http://localhost:3000"]
    assert settings.workflow_webhooks_configured is False
    assert settings.is_production is True
    assert settings.WORKFLOW_TIMEOUT_SECONDS == 30.0
