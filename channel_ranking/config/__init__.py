"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import DEFAULT_ENDPOINT, DashboardConfig, SourceConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_ENDPOINT",
    "DashboardConfig",
    "SourceConfig",
]
