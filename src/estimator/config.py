"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EstimatorSettings(BaseSettings):
    """Order-entry estimate parameters."""

    model_config = SettingsConfigDict(env_prefix="ESTIMATOR_")

    use_double_pip_precision: bool = False  # 16-digit intermediates for fill estimates
    max_estimate_steps: int = Field(default=10000, gt=0)  # steps drained per estimate


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    estimator: EstimatorSettings = EstimatorSettings()
