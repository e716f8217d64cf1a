"""平台协作方模块

定义外部服务接口，并提供 Android 设备上的默认实现。
"""

from pathlib import Path
from typing import Optional

from ..config.schema import AbUpdateMode, OtaStageConfig
from .base import (
    StreamingEngine,
    FullImageInstaller,
    DeviceCapability,
    EncryptionDetector,
    PlatformServices,
    StaticCapability,
    StaticEncryption,
)
from .android import (
    UpdateEngineClient,
    RecoveryCommandInstaller,
    GetpropCapability,
    EncryptedRootsDetector,
)


def build_platform(
    config: Optional[OtaStageConfig] = None,
    two_slots: Optional[bool] = None,
    encrypted: Optional[bool] = None,
) -> PlatformServices:
    """根据配置组装平台服务

    Args:
        config: 配置，None 时使用默认配置
        two_slots: 覆盖设备 A/B 探测结果
        encrypted: 覆盖加密探测结果
    """
    config = config or OtaStageConfig()

    if two_slots is not None:
        capability = StaticCapability(two_slots)
    elif config.device.ab_update == AbUpdateMode.AUTO:
        capability = GetpropCapability(config.device.getprop)
    else:
        capability = StaticCapability(config.device.ab_update == AbUpdateMode.TRUE)

    if encrypted is not None:
        encryption = StaticEncryption(encrypted)
    else:
        encryption = EncryptedRootsDetector(config.device.encrypted_roots)

    return PlatformServices(
        engine=UpdateEngineClient(config.engine.client, config.engine.performance_command),
        installer=RecoveryCommandInstaller(Path(config.recovery.command_file), config.recovery.locale),
        capability=capability,
        encryption=encryption,
    )


__all__ = [
    "StreamingEngine",
    "FullImageInstaller",
    "DeviceCapability",
    "EncryptionDetector",
    "PlatformServices",
    "StaticCapability",
    "StaticEncryption",
    "UpdateEngineClient",
    "RecoveryCommandInstaller",
    "GetpropCapability",
    "EncryptedRootsDetector",
    "build_platform",
]
