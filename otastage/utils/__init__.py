"""通用工具模块"""

from .logging import (
    configure_logging,
    get_stage_logger,
    StageLogger,
    LogStage,
    locate_logger,
    props_logger,
    select_logger,
    engine_logger,
    copy_logger,
    perms_logger,
    install_logger,
    session_logger,
)

from .paths import (
    expand_path,
    derive_artifact_path,
    is_under_any,
    format_size,
)

__all__ = [
    # 日志相关
    "configure_logging",
    "get_stage_logger",
    "StageLogger",
    "LogStage",
    "locate_logger",
    "props_logger",
    "select_logger",
    "engine_logger",
    "copy_logger",
    "perms_logger",
    "install_logger",
    "session_logger",

    # 路径相关
    "expand_path",
    "derive_artifact_path",
    "is_under_any",
    "format_size",
]
