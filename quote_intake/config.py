"""Application configuration management."""

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Settings
    app_name: str = "Quote Intake - extraction merge and reference integrity"
    app_version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Synchronization defaults used by the editing surface
    auto_create_deductibles: bool = Field(
        default=True,
        description="Create a default deductible for every vehicle that has none"
    )
    remove_orphaned_deductibles: bool = Field(
        default=False,
        description="Drop deductibles whose vehicle no longer exists (otherwise only warn)"
    )
    remove_orphaned_lienholders: bool = Field(
        default=False,
        description="Drop lienholders whose vehicle no longer exists (otherwise only warn)"
    )
    clear_orphaned_driver_refs: bool = Field(
        default=True,
        description="Null and flag accident/ticket driver references to unknown drivers"
    )

    # Collection cardinalities
    max_vehicles: int = Field(default=6, ge=0)
    max_drivers: int = Field(default=10, ge=0)
    max_deductibles: int = Field(default=10, ge=0)
    max_lienholders: int = Field(default=10, ge=0)
    max_accidents: int = Field(default=20, ge=0)
    max_tickets: int = Field(default=20, ge=0)
    max_claims: int = Field(default=20, ge=0)
    max_scheduled_items: int = Field(default=50, ge=0)
    min_vehicles: int = Field(default=0, ge=0)
    min_drivers: int = Field(default=0, ge=0)

    # Incident classification
    ticket_type_keywords: List[str] = Field(
        default_factory=lambda: ["ticket", "violation", "speeding", "citation", "moving"],
        description="Incident type keywords that classify an extracted incident as a ticket"
    )

    model_config = SettingsConfigDict(
        env_prefix="QUOTE_INTAKE_",
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings: Application settings loaded from environment
    """
    return Settings()


# Global settings instance
settings = get_settings()
