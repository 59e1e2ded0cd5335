import pytest
from shared.security import Permission, Role

from disaster_api.config import ApiSettings, load_api_settings
from disaster_api.errors import ApiError
from disaster_api.security import DEFAULT_USER_ID, require_permission, resolve_user


def test_missing_header_falls_back_to_default_user() -> None:
    user = resolve_user(None)

    assert user.user_id == DEFAULT_USER_ID
    assert user.role == Role.CONTRIBUTOR
    assert user.is_admin is False


def test_admin_mock_users() -> None:
    assert resolve_user("netrunnerX").is_admin
    assert resolve_user(" reliefAdmin ").is_admin


def test_unknown_user_is_unauthorized() -> None:
    with pytest.raises(ApiError) as exc_info:
        resolve_user("mallory")

    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "UNAUTHORIZED"


def test_contributor_may_not_delete_disasters() -> None:
    with pytest.raises(ApiError) as exc_info:
        require_permission(resolve_user("volunteer2"), Permission.DELETE_DISASTER)

    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Role 'contributor' may not disaster:delete"
    require_permission(resolve_user("netrunnerX"), Permission.DELETE_DISASTER)
    require_permission(resolve_user("volunteer2"), Permission.SUBMIT_REPORT)


def test_settings_defaults() -> None:
    settings = ApiSettings()

    assert settings.SERVICE_NAME == "disaster-api"
    assert settings.CACHE_TTL_SECONDS == 3600
    assert settings.PROXIMITY_MIN_RADIUS_METERS == 100
    assert settings.PROXIMITY_MAX_RADIUS_METERS == 50_000
    assert settings.PROXIMITY_DEFAULT_RADIUS_METERS == 10_000
    assert settings.NOMINATIM_USER_AGENT == "DisasterResponsePlatform/1.0"


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.test")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "120")

    settings = load_api_settings()

    assert settings.MAPBOX_ACCESS_TOKEN == "pk.test"
    assert settings.CACHE_TTL_SECONDS == 120
