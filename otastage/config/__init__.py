"""配置模块

OtaStageConfig schema 与 YAML 读写。
"""

from .schema import OtaStageConfig, AbUpdateMode, LogLevel
from .loader import (
    ConfigError,
    ConfigLoader,
    ConfigValidationError,
    config_loader,
    describe_location,
    load_config,
    save_config,
    validate_config,
)

__all__ = [
    "OtaStageConfig",
    "AbUpdateMode",
    "LogLevel",
    "ConfigLoader",
    "ConfigError",
    "ConfigValidationError",
    "config_loader",
    "describe_location",
    "load_config",
    "save_config",
    "validate_config",
]
