"""
otastage - OTA 更新包暂存与安装编排

定位更新包内 payload 的精确偏移、读取 payload 属性，
按设备槽位与加密状态选择流式应用、解密后整包安装或直接整包安装。
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config.schema import OtaStageConfig
from .package import PayloadLocator, HeaderPropertyReader, UpdatePackage
from .install import InstallStrategy, UpdateSession

__all__ = [
    "OtaStageConfig",
    "PayloadLocator",
    "HeaderPropertyReader",
    "UpdatePackage",
    "InstallStrategy",
    "UpdateSession",
    "__version__",
]
