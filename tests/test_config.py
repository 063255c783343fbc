import pytest
from pydantic import ValidationError

from mealsync.core.config import Settings
from mealsync.main import build_store
from mealsync.services.writer import WriterOptions
from mealsync.stores import AppwriteStore, LocalStore

APPWRITE_ENV = {
    "APPWRITE_ENDPOINT": "https://appwrite.test/v1",
    "APPWRITE_PROJECT_ID": "proj",
    "APPWRITE_API_KEY": "secret",
    "DATABASE_ID": "db",
    "COLLECTION_MAIN": "main",
    "COLLECTION_PRODUCTS": "products",
}


def test_incomplete_appwrite_configuration_fails_at_construction(monkeypatch):
    monkeypatch.delenv("APPWRITE_API_KEY", raising=False)
    with pytest.raises(ValidationError) as excinfo:
        Settings(store_backend="appwrite", appwrite_endpoint="https://appwrite.test/v1")

    assert "APPWRITE_API_KEY" in str(excinfo.value)


def test_settings_read_environment_variables(monkeypatch):
    for name, value in APPWRITE_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("MAX_OPERATIONS_PER_TRANSACTION", "50")
    monkeypatch.setenv("ROLLBACK_RETRY_DELAY", "3")
    monkeypatch.setenv("STAGING_MODE", "per_row")

    settings = Settings()

    assert settings.store_backend == "appwrite"
    assert settings.collection_purchases == "purchases"
    options = WriterOptions.from_settings(settings)
    assert options.max_operations == 50
    assert options.rollback_delay == 3.0
    assert options.rollback_attempts == 3
    assert options.transaction_ttl == 120
    assert options.staging == "per_row"


def test_invalid_environment_value_fails_at_construction(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "local")
    monkeypatch.setenv("WRITE_MODE", "sometimes")

    with pytest.raises(ValidationError):
        Settings()


def test_local_backend_fills_collection_names():
    settings = Settings(store_backend="local")

    assert settings.collection_main == "main"
    assert settings.collection_products == "products"


@pytest.mark.asyncio
async def test_build_store_follows_backend(monkeypatch):
    assert isinstance(build_store(Settings(store_backend="local")), LocalStore)

    for name, value in APPWRITE_ENV.items():
        monkeypatch.setenv(name, value)
    store = build_store(Settings())
    assert isinstance(store, AppwriteStore)
    await store.close()
