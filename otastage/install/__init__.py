"""安装编排模块

策略选择、解密安装任务与更新会话。
"""

from .status import StatusChannel
from .strategy import InstallStrategy, InstallStrategySelector, select_strategy
from .decrypting_installer import (
    CancellationToken,
    DecryptJob,
    DecryptOutcome,
    DecryptState,
    DecryptTask,
    DecryptingInstaller,
    copy_file,
)
from .session import InstallSession, UpdateSession

__all__ = [
    "StatusChannel",
    "InstallStrategy",
    "InstallStrategySelector",
    "select_strategy",
    "CancellationToken",
    "DecryptJob",
    "DecryptOutcome",
    "DecryptState",
    "DecryptTask",
    "DecryptingInstaller",
    "copy_file",
    "InstallSession",
    "UpdateSession",
]
