import pytest
from pydantic import ValidationError

from rolesync_api.settings import DEFAULT_TIER_CONCURRENCY, Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.sync_tier_concurrency == DEFAULT_TIER_CONCURRENCY == 3
    assert settings.directory_base_url == "https://groups.roblox.com"
    assert settings.database_url.startswith("sqlite+aiosqlite:///")
    assert settings.single_workspace is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROLESYNC_SYNC_TIER_CONCURRENCY", "5")
    monkeypatch.setenv("ROLESYNC_LOG_LEVEL", "debug")
    monkeypatch.setenv("ROLESYNC_LOG_FORMAT", "JSON")
    monkeypatch.setenv("ROLESYNC_DIRECTORY_BASE_URL", "https://groups.example/ ")

    settings = Settings(_env_file=None)

    assert settings.sync_tier_concurrency == 5
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "json"
    assert settings.directory_base_url == "https://groups.example"


@pytest.mark.parametrize(
    "overrides",
    [
        {"sync_tier_concurrency": 0},
        {"log_level": "loud"},
        {"log_format": "xml"},
        {"thumbnail_size": "big"},
        {"directory_timeout_seconds": 0},
        {"database_url": "  "},
    ],
)
def test_invalid_values_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
