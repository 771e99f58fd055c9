"""ShrinkTask Infrastructure Layer.

This layer provides the ambient services used by the task:
- ConfigManager: Layered configuration (defaults, YAML file, environment, runtime)
- Logger: Structured logging system
"""

from .config_manager import ConfigError
from .config_manager import ConfigManager as Config
from .config_manager import ConfigSource, get_config_manager, set_global_config
from .logger import Logger, LogLevel, configure_logger, get_logger, set_global_logger

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "configure_logger",
    "get_logger",
    "set_global_logger",
    # ConfigManager exports
    "ConfigSource",
    "ConfigError",
    "Config",
    "get_config_manager",
    "set_global_config",
]
