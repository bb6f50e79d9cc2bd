# ABOUTME: Application configuration using Pydantic Settings for environment variables
# ABOUTME: One Config value scopes output roots, registry names, pool sizes and retry policy for a run

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Config(BaseSettings):
    """Application configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="LORE_SCRIBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        json_file="lore-scribe.json",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown environment variables
    )

    # Folders
    output_folder: Path = Field(default=Path("./output"), description="Root of the generated document tree")
    registry_root: Path | None = Field(
        default=None, description="Folder holding the registry files (defaults to the output folder)"
    )
    category_source_folder: Path = Field(
        default=Path("./source/Categories"), description="Exported category JSON records"
    )
    lore_source_folder: Path = Field(default=Path("./source/Articles"), description="Exported article JSON records")
    image_source_folder: Path = Field(default=Path("./source/images"), description="Exported image JSON records")
    image_folder_name: str = Field(default="img", description="Image folder name under the output root")

    # Registry files
    category_registry_name: str = Field(default="category-registry.json")
    lore_registry_name: str = Field(default="lore-registry.json")
    image_registry_name: str = Field(default="img-registry.json")

    # Worker pools
    max_concurrent_reads: int = Field(default=20, ge=1, description="Concurrent source file reads")
    max_concurrent_processing: int = Field(default=5, ge=1, description="Concurrent document writes")
    max_concurrent_downloads: int = Field(default=4, ge=1, description="Concurrent outbound fetches")

    # Download policy
    download_max_attempts: int = Field(default=3, ge=1, description="Total attempts for transient failures")
    download_base_delay: float = Field(default=1.0, ge=0.0, description="First retry delay in seconds")
    download_max_delay: float = Field(default=30.0, ge=0.0, description="Upper bound for a single retry delay")
    download_timeout: float = Field(default=30.0, gt=0.0, description="Per-request timeout in seconds")
    user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) Gecko/20100101 Firefox/47.0",
        description="User-Agent header sent with image requests",
    )

    # Logging Configuration
    log_mode: Literal["interactive", "production"] = Field(default="interactive", description="Logging output mode")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging verbosity level"
    )

    log_file: Path | None = Field(default=None, description="Custom log file path (overrides default)")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def registry_dir(self) -> Path:
        return self.registry_root if self.registry_root is not None else self.output_folder

    @property
    def image_dir(self) -> Path:
        return self.output_folder / self.image_folder_name


# Global config instance - lazy loaded when first accessed
_config_instance: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Creates the config on first access, subsequent calls return the same instance.
    Only the CLI uses this; services receive their Config explicitly.

    Returns:
        Config: The application configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reload_config() -> Config:
    """Reload configuration from environment variables.

    Useful for testing or when environment variables change at runtime.

    Returns:
        Config: A fresh configuration instance
    """
    global _config_instance
    _config_instance = Config()
    return _config_instance
