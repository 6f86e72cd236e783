"""Application settings and configuration."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from room_scout.schema import Destination


class AddressConfig(BaseModel):
    known_localities: list[str] = Field(default_factory=lambda: ["zürich", "zurich", "switzerland"])
    default_locality: str = "Zürich, Switzerland"

    @field_validator("known_localities", mode="after")
    @classmethod
    def lowercase(cls, v: list[str]) -> list[str]:
        return [token.lower() for token in v]


class FetcherConfig(BaseModel):
    mode: Literal["http", "impersonate", "browser"] = "http"
    timeout: float = 30.0
    headless: bool = True


class MapsConfig(BaseModel):
    base_url: str = "https://maps.googleapis.com/maps/api"
    language: str = "de"
    timeout: float = 15.0
    check_address: str = "Bahnhofstrasse 1, 8001 Zürich, Switzerland"


class Config(BaseModel):
    destination: Destination = Field(
        default_factory=lambda: Destination(
            address="Rämistrasse 101, 8092 Zürich, Switzerland",
            lat=47.37659190407654,
            lng=8.548000258889498,
        )
    )
    address: AddressConfig = Field(default_factory=AddressConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    maps: MapsConfig = Field(default_factory=MapsConfig)


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Google Maps
    google_maps_api_key: str = Field(default="", description="Server-side Google Maps API key")

    # Sentry
    sentry_dsn: str = Field(default="", description="Sentry DSN, empty string disables Sentry")
    sentry_environment: str = Field(default="development", description="Sentry environment tag (e.g. production, development)")

    log_level: str = Field(default="INFO")

    # Paths
    config_file: Path = Field(default=Path("config.yaml"), description="Path to config file")
    data_dir: Path = Field(default=Path("data"), description="Directory for the SQLite database")
    logs_dir: Path = Field(default=Path("logs"), description="Directory for log files")

    def load_config(self) -> Config:
        """Load additional configuration from YAML file."""
        if not self.config_file.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_file}")

        with open(self.config_file, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
            return Config.model_validate(data)


settings = Settings()
