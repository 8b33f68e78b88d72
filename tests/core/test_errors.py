# tests/core/test_errors.py
from clinic.core.config import Settings
from clinic.core.errors import BadRequestError, ConflictError, NotFoundError, ServiceError
from clinic.core.logging import build_logging_config


def test_service_errors_carry_status_and_detail() -> None:
    assert BadRequestError().status_code == 400
    assert NotFoundError().status_code == 404
    assert ConflictError("taken").detail == "taken"
    assert str(ConflictError("taken")) == "taken"


def test_subclass_default_detail_is_used() -> None:
    class Missing(NotFoundError):
        default_detail = "Thing not found"

    err = Missing()
    assert isinstance(err, ServiceError)
    assert err.detail == "Thing not found"


def test_settings_helpers() -> None:
    settings = Settings(APP_ENV="production", CORS_ORIGINS="http://a.com, http://b.com,")

    assert settings.is_production
    assert settings.cors_origins == ["http://a.com", "http://b.com"]


def test_logging_config_uses_configured_level() -> None:
    config = build_logging_config(Settings(LOG_LEVEL="debug"))

    assert config["loggers"]["clinic"]["level"] == "DEBUG"
    assert config["handlers"]["console"]["class"] == "logging.StreamHandler"
