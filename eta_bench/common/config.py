"""
Configuration management for the ETA benchmark engine.

This module provides centralized configuration loading and validation using Pydantic.
All environment variables are optional and validated at startup.
"""

import os
from typing import Optional, Literal, List
from pydantic import BaseModel, validator, Field
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

ProviderName = Literal["google", "mappls", "oauth2"]


class BenchmarkConfig(BaseModel):
    """Comparison and aggregation configuration."""

    threshold_pct: float = Field(
        default=10.0, description="Variation band (percentage points) treated as Similar"
    )
    reference_provider: ProviderName = Field(
        default="google", description="Provider treated as ground truth"
    )
    compared_providers: List[ProviderName] = Field(
        default=["mappls", "oauth2"],
        description="Providers evaluated against the reference",
    )
    percent_precision: int = Field(
        default=1, description="Decimal places for classification percentages"
    )
    variation_precision: int = Field(
        default=2, description="Decimal places for average variation"
    )
    lowercase_cities: bool = Field(
        default=False, description="Lowercase city labels during normalization"
    )
    bulk_threshold: int = Field(
        default=5000,
        description="Batch size at which auto mode switches to the aggregate-first path",
    )

    @validator("threshold_pct")
    def validate_threshold(cls, v):
        """Threshold is a magnitude."""
        if v < 0:
            raise ValueError("threshold_pct must be >= 0")
        return v

    @validator("compared_providers")
    def validate_compared_providers(cls, v, values):
        """Compared providers must be non-empty and exclude the reference."""
        if not v:
            raise ValueError("At least one compared provider is required")
        reference = values.get("reference_provider")
        if reference in v:
            raise ValueError(
                f"Reference provider '{reference}' cannot also be a compared provider"
            )
        if len(set(v)) != len(v):
            raise ValueError("Compared providers must be unique")
        return v

    @validator("percent_precision", "variation_precision")
    def validate_precision(cls, v):
        if v < 0:
            raise ValueError("Precision must be >= 0")
        return v

    @validator("bulk_threshold")
    def validate_bulk_threshold(cls, v):
        if v < 1:
            raise ValueError("bulk_threshold must be >= 1")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format_str: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    enable_structured_logging: bool = Field(
        default=True, description="Enable structured JSON logging"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    benchmark: BenchmarkConfig
    logging: LoggingConfig

    # Environment
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")


def _parse_bool(value: Optional[str], default: str = "false") -> bool:
    return (value or default).strip().lower() == "true"


def _parse_list(value: Optional[str], default: str) -> List[str]:
    raw = value if value is not None else default
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


def load_config() -> AppConfig:
    """Load and validate configuration from environment variables."""

    try:
        threshold_pct = float(os.getenv("ETA_THRESHOLD_PCT", "10"))
        percent_precision = int(os.getenv("ETA_PERCENT_PRECISION", "1"))
        variation_precision = int(os.getenv("ETA_VARIATION_PRECISION", "2"))
        bulk_threshold = int(os.getenv("ETA_BULK_THRESHOLD", "5000"))
    except ValueError as e:
        raise ValueError(f"Invalid numeric ETA_* environment variable: {e}")

    config_dict = {
        "benchmark": {
            "threshold_pct": threshold_pct,
            "reference_provider": os.getenv("ETA_REFERENCE_PROVIDER", "google")
            .strip()
            .lower(),
            "compared_providers": _parse_list(
                os.getenv("ETA_COMPARED_PROVIDERS"), "mappls,oauth2"
            ),
            "percent_precision": percent_precision,
            "variation_precision": variation_precision,
            "lowercase_cities": _parse_bool(os.getenv("ETA_LOWERCASE_CITIES")),
            "bulk_threshold": bulk_threshold,
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "enable_structured_logging": _parse_bool(
                os.getenv("ENABLE_STRUCTURED_LOGGING"), "true"
            ),
        },
        "environment": os.getenv("ENVIRONMENT", "development"),
        "debug": _parse_bool(os.getenv("DEBUG")),
    }

    return AppConfig(**config_dict)


# Global configuration instance
config = load_config()
