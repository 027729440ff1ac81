"""
Module: settings

Purpose: Centralized chart defaults.

Key Functions:
- ChartSettings: pydantic-settings model with validation
- get_settings: Cached settings read from the environment
- load_settings: Settings read from a YAML file

Architecture Notes:
- Environment variables use the ``CHARTMIX_`` prefix (``CHARTMIX_CAP=5``)
- Explicit keyword arguments and YAML values override the environment
- Charts copy these defaults at construction; later setters win
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from chartmix.exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)


class ChartSettings(BaseSettings):
    """Defaults applied to every new chart."""

    model_config = SettingsConfigDict(
        env_prefix="CHARTMIX_",
        extra="forbid",
    )

    # Capping (None = unbounded)
    cap: int | None = Field(default=None, ge=0)
    others_label: str = "Others"

    # Stacking
    stacked: bool = True
    full_stack_data: bool = False
    hidable_stacks: bool = False

    # Colors
    palette: str = "tab10"
    palette_size: int = Field(default=10, ge=1)

    # Axes and layout
    x_axis_padding: float = 0.0
    y_axis_padding: float = 0.0
    gap: float = Field(default=5.0, ge=0)


@lru_cache(maxsize=1)
def get_settings() -> ChartSettings:
    """Get settings from the environment, cached for the process."""
    return ChartSettings()


def load_settings(path: Path | str, **overrides: Any) -> ChartSettings:
    """Load chart settings from a YAML file.

    Expected YAML format:
    ```yaml
    chart:
      cap: 5
      others_label: "Everything else"
      stacked: false
    ```

    Args:
        path: Path to the YAML file
        **overrides: Values that take precedence over the file

    Returns:
        Validated ChartSettings

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidConfigurationError: If the file content is not valid settings
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(
                f"Invalid YAML in settings file {path}",
                setting="file",
                context={"path": str(path), "error": str(e)},
            ) from e

    if data is None:
        data = {}
    section = data.get("chart", {}) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise InvalidConfigurationError(
            f"Expected a 'chart' mapping in {path}",
            setting="chart",
            context={"path": str(path)},
        )

    try:
        settings = ChartSettings(**{**section, **overrides})
    except ValidationError as e:
        raise InvalidConfigurationError(
            f"Invalid chart settings in {path}",
            setting="chart",
            context={"path": str(path), "errors": e.errors(include_url=False)},
        ) from e

    logger.info(f"Loaded chart settings from {path}")
    return settings
