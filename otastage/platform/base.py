"""
外部协作方接口

流式更新引擎、整包安装器、设备能力与加密探测都是外部服务，
本库只通过下面的协议调用它们。
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class StreamingEngine(Protocol):
    """流式（A/B）更新引擎"""

    def apply_payload(self, path: str, offset: int, length: int, headers: Sequence[str]) -> None:
        """异步应用 payload，调用后立即返回"""
        ...

    def set_performance_mode(self, enabled: bool) -> None:
        ...


@runtime_checkable
class FullImageInstaller(Protocol):
    """整包安装器（单槽设备）"""

    def install_package(self, path: Path) -> None:
        """同步安装，失败时抛出异常"""
        ...


@runtime_checkable
class DeviceCapability(Protocol):
    def has_two_updatable_slots(self) -> bool:
        ...


@runtime_checkable
class EncryptionDetector(Protocol):
    def is_encrypted(self, path: Path) -> bool:
        ...


@dataclass
class PlatformServices:
    """一次更新会话使用的全部外部服务"""
    engine: StreamingEngine
    installer: FullImageInstaller
    capability: DeviceCapability
    encryption: EncryptionDetector


class StaticCapability:
    """固定返回值的设备能力"""

    def __init__(self, two_slots: bool):
        self.two_slots = two_slots

    def has_two_updatable_slots(self) -> bool:
        return self.two_slots


class StaticEncryption:
    """固定返回值的加密探测"""

    def __init__(self, encrypted: bool):
        self.encrypted = encrypted

    def is_encrypted(self, path: Path) -> bool:
        return self.encrypted
