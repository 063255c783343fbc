from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Application Metadata
PROJECT_NAME = "MealSync Products Writer"
VERSION = "1.0.0"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings(BaseSettings):
    """
    Connection parameters and writer tuning, built once at process start from
    environment variables named after the fields (STORE_BACKEND, APPWRITE_ENDPOINT, ...).
    An incomplete Appwrite configuration fails here, not on the first remote call.
    """
    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    store_backend: Literal["appwrite", "local"] = "appwrite"

    # Appwrite connection
    appwrite_endpoint: Optional[str] = None
    appwrite_project_id: Optional[str] = None
    appwrite_api_key: Optional[str] = None
    database_id: Optional[str] = None

    # Record sets
    collection_main: Optional[str] = None
    collection_products: Optional[str] = None
    collection_purchases: str = "purchases"

    # Local (Tortoise) backend
    database_url: str = "postgres://user:password@db:5432/mealsync_db"

    # Writer tuning
    max_operations_per_transaction: int = Field(99, ge=2)
    transaction_ttl: int = Field(120, gt=0)
    write_mode: Literal["auto", "single", "batched"] = "auto"
    staging_mode: Literal["bulk", "per_row"] = "bulk"
    rollback_attempts: int = Field(3, ge=1)
    rollback_retry_delay: float = Field(2.0, ge=0)

    http_timeout: float = Field(30.0, gt=0)
    log_level: str = "INFO"

    @model_validator(mode="after")
    def check_backend_requirements(self) -> "Settings":
        if self.store_backend == "appwrite":
            required = {
                "APPWRITE_ENDPOINT": self.appwrite_endpoint,
                "APPWRITE_PROJECT_ID": self.appwrite_project_id,
                "APPWRITE_API_KEY": self.appwrite_api_key,
                "DATABASE_ID": self.database_id,
                "COLLECTION_MAIN": self.collection_main,
                "COLLECTION_PRODUCTS": self.collection_products,
            }
            missing = [name for name, value in required.items() if not value]
            if missing:
                raise ValueError(f"Missing Appwrite configuration: {', '.join(missing)}")
        else:
            # The local store has no provisioning step, plain names are enough
            self.collection_main = self.collection_main or "main"
            self.collection_products = self.collection_products or "products"
            self.database_id = self.database_id or "local"
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
