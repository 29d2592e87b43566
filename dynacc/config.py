"""
Accumulator Configuration

Environment-based configuration for the dynamic accumulator library.
Variables use the DYNACC_ prefix, e.g. DYNACC_PRIME_BITS=256.
"""

import os
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DYNACC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_format: str = Field(
        default="json",
        description="Log format: json or text"
    )

    app_name: str = Field(
        default="dynacc"
    )

    app_version: str = Field(
        default="0.1.0"
    )

    # Element encoding
    prime_bits: int = Field(
        default=256,
        ge=64,
        description="Bit length of prime representatives"
    )

    max_attempts: int = Field(
        default=100_000,
        gt=0,
        description="Candidate bound before encoding gives up"
    )

    mr_rounds: int = Field(
        default=64,
        gt=0,
        description="Miller-Rabin rounds for primality checks"
    )

    # Public parameters
    min_modulus_bits: int = Field(
        default=2048,
        gt=0,
        description="Smallest modulus accepted by validate_params"
    )

    params_file: Optional[str] = Field(
        default=None,
        description="JSON file holding hex N and g"
    )

    # Witness refresh
    refresh_workers: int = Field(
        default=0,
        ge=0,
        description="Process pool width for witness refresh (0 = CPU count)"
    )

    parallel_threshold: int = Field(
        default=64,
        ge=1,
        description="Minimum number of witnesses before refresh goes parallel"
    )

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value

    def worker_count(self) -> int:
        """Resolve refresh_workers, mapping 0 to the CPU count."""
        return self.refresh_workers or (os.cpu_count() or 1)


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get library settings."""
    return settings
