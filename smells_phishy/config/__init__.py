from .settings import Settings, Environment, get_settings
from .logging import configure_logging, get_logger

__all__ = [
    "Settings",
    "Environment",
    "get_settings",
    "configure_logging",
    "get_logger",
]
