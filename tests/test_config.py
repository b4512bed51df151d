from pathlib import Path

import pytest

from lineagepro.config import AppSettings, ConfigError, ExportSettings, get_settings
from lineagepro.storage import InMemoryStore, SqlKeyValueStore, create_store


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults() -> None:
    settings = AppSettings()

    assert settings.storage.backend == "sql"
    assert settings.canvas.default_x == 350
    assert settings.canvas.default_y == 150
    assert settings.canvas.identity == "opaque"
    assert settings.export.basename == "lineage"


def test_env_overrides_nested_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINEAGEPRO_STORAGE__BACKEND", "memory")
    monkeypatch.setenv("LINEAGEPRO_CANVAS__GRAMMAR", "commas")
    monkeypatch.setenv("LINEAGEPRO_LOGGING__LEVEL", "DEBUG")

    settings = get_settings()

    assert settings.storage.backend == "memory"
    assert settings.canvas.grammar == "commas"
    assert settings.logging.level == "DEBUG"


def test_init_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINEAGEPRO_APP_NAME", "from-env")

    settings = get_settings(app_name="from-init")

    assert settings.app_name == "from-init"


def test_settings_are_cached() -> None:
    assert get_settings() is get_settings()


def test_bad_page_size_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINEAGEPRO_EXPORT__PAGE_WIDTH_PX", "0")
    with pytest.raises(ConfigError):
        get_settings()

    with pytest.raises(ConfigError):
        ExportSettings(page_height_px=-1).validate_pages()


def test_create_store_memory() -> None:
    store = create_store(AppSettings(storage={"backend": "memory"}))

    assert isinstance(store, InMemoryStore)


def test_create_store_sql(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'kv.db'}"
    store = create_store(AppSettings(storage={"backend": "sql", "url": url, "namespace": "sales"}))
    try:
        assert isinstance(store, SqlKeyValueStore)
        store.set("nodes", "[]")
        assert store.get("nodes") == "[]"
    finally:
        store.close()
