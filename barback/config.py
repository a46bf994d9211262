"""Application configuration pulled from environment variables via pydantic."""
from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class ProviderLimit(BaseModel):
    """Cache TTL and call budget for one upstream provider."""
    ttl_seconds: int
    max_calls: int
    window_seconds: int

    @property
    def ttl_ms(self) -> int:
        return self.ttl_seconds * 1000

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


def _default_provider_limits() -> dict[str, ProviderLimit]:
    return {
        # OpenWeatherMap free tier allows 60 calls/minute
        "openweathermap": ProviderLimit(ttl_seconds=300, max_calls=60, window_seconds=60),
        "weather-demo": ProviderLimit(ttl_seconds=300, max_calls=1000, window_seconds=60),
        "openfoodfacts": ProviderLimit(ttl_seconds=86400, max_calls=100, window_seconds=60),
        # UPCitemdb trial endpoint allows 100 lookups/day
        "upcitemdb": ProviderLimit(ttl_seconds=86400, max_calls=100, window_seconds=86400),
        "barcodelookup": ProviderLimit(ttl_seconds=86400, max_calls=50, window_seconds=60),
        "cocktaildb": ProviderLimit(ttl_seconds=86400, max_calls=100, window_seconds=60),
    }


class Settings(BaseSettings):
    """Environment-driven configuration for the barback service."""
    model_config = SettingsConfigDict(env_prefix="BARBACK_", extra="ignore", populate_by_name=True)

    # Credentials; a missing key switches that integration to demo mode.
    weather_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("BARBACK_WEATHER_API_KEY", "WEATHER_API_KEY")
    )
    vision_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("BARBACK_VISION_API_KEY", "VISION_API_KEY")
    )
    speech_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("BARBACK_SPEECH_API_KEY", "SPEECH_API_KEY")
    )
    barcode_lookup_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("BARBACK_BARCODE_LOOKUP_API_KEY", "BARCODE_LOOKUP_API_KEY")
    )

    api_key: str | None = None
    api_key_redis_url: str | None = None
    api_key_redis_set: str = "api_keys"

    catalog_backend: str = "memory"  # options: memory, sql
    catalog_database_url: str = "sqlite:///./barback.db"

    default_location: str = "New York"
    openweathermap_base_url: str = "https://api.openweathermap.org/data/2.5"
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org"
    upcitemdb_base_url: str = "https://api.upcitemdb.com"
    barcodelookup_base_url: str = "https://api.barcodelookup.com"
    cocktaildb_base_url: str = "https://www.thecocktaildb.com/api/json/v1/1"
    vision_base_url: str = "https://vision.googleapis.com/v1"
    speech_base_url: str = "https://speech.googleapis.com/v1"
    http_timeout_seconds: float = 10.0

    provider_limits: dict[str, ProviderLimit] = Field(default_factory=_default_provider_limits)

    demo_inventory_defaults: bool = True
    max_reorder_suggestions: int = 10

    @field_validator(
        "openweathermap_base_url",
        "openfoodfacts_base_url",
        "upcitemdb_base_url",
        "barcodelookup_base_url",
        "cocktaildb_base_url",
        "vision_base_url",
        "speech_base_url",
        mode="after",
    )
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    def limit_for(self, provider: str) -> ProviderLimit:
        """Return the configured limit for `provider`, falling back to the defaults."""
        limit = self.provider_limits.get(provider)
        if limit is None:
            limit = _default_provider_limits().get(provider)
        if limit is None:
            raise KeyError(f"No rate limit configured for provider '{provider}'")
        return limit


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
