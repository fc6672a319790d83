"""Application configuration."""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Geocoder settings.

    Environment variables will be loaded and validated using Pydantic.
    """

    app_name: str = "Gym Finder Geocoder"
    version: str = "0.1.0"

    # Dataset Settings
    DATA_DIR: Path = Path("data")
    DATASET_FILENAME: str = "{city}-gyms.csv"
    BACKUP_FILENAME: str = "{city}-gyms-backup.csv"
    ADDRESS_COLUMN: str = "address"
    COORDINATES_COLUMN: str = "coordinates"
    NAME_COLUMN: str = "name"

    # Provider Settings
    GEOCODING_PROVIDER: str = "auto"  # auto, nominatim, google
    NOMINATIM_DOMAIN: str = "nominatim.openstreetmap.org"
    NOMINATIM_USER_AGENT: str = "FindJiuJitsu/1.0"
    GOOGLE_MAPS_API_KEY: str | None = None
    GOOGLE_MIN_CONFIDENCE: float = Field(default=0.8, ge=0.0, le=1.0)
    GEOCODING_TIMEOUT: int = Field(default=10, gt=0)

    # Pacing Settings
    GEOCODING_INTER_ADDRESS_DELAY: float = Field(default=1.5, ge=1.0)
    GEOCODING_RETRY_DELAY: float = Field(default=2.0, ge=2.0)
    GEOCODING_MAX_ADDRESS_RETRIES: int = Field(default=1, ge=0, le=1)
    GEOCODING_PRECISION: int = Field(default=8, ge=6, le=15)

    # Cache Settings
    REDIS_URL: str | None = None
    GEOCODING_CACHE_TTL: int = Field(default=2592000, ge=0)  # 30 days

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False
    LOG_DIR: Path | None = Path("logs")

    # Metrics Settings
    METRICS_TEXTFILE: Path | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_pacing(self) -> "Settings":
        """Whole-address retries must back off longer than the normal pacing."""
        if self.GEOCODING_RETRY_DELAY <= self.GEOCODING_INTER_ADDRESS_DELAY:
            raise ValueError(
                "GEOCODING_RETRY_DELAY must be longer than "
                f"GEOCODING_INTER_ADDRESS_DELAY ({self.GEOCODING_RETRY_DELAY} <= "
                f"{self.GEOCODING_INTER_ADDRESS_DELAY})"
            )
        return self

    @model_validator(mode="after")
    def validate_provider(self) -> "Settings":
        """Normalize the provider name and require a key for Google."""
        self.GEOCODING_PROVIDER = self.GEOCODING_PROVIDER.strip().lower()
        if self.GEOCODING_PROVIDER not in ("auto", "nominatim", "google"):
            raise ValueError(
                f"Unknown GEOCODING_PROVIDER: {self.GEOCODING_PROVIDER!r}"
            )
        if self.GEOCODING_PROVIDER == "google" and not self.GOOGLE_MAPS_API_KEY:
            raise ValueError("GEOCODING_PROVIDER=google requires GOOGLE_MAPS_API_KEY")
        return self

    def dataset_path(self, city: str, data_dir: Path | None = None) -> Path:
        """Path of the dataset file for a city."""
        base = data_dir if data_dir is not None else self.DATA_DIR
        return base / self.DATASET_FILENAME.format(city=city.lower())

    def backup_path(self, city: str, data_dir: Path | None = None) -> Path:
        """Path of the sibling backup file for a city."""
        base = data_dir if data_dir is not None else self.DATA_DIR
        return base / self.BACKUP_FILENAME.format(city=city.lower())


# Create settings instance
settings = Settings()
