"""
安装策略选择

| 双槽设备 | 包已加密 | 策略 |
|---|---|---|
| 是 | 任意 | STREAMING_APPLY |
| 否 | 是 | DECRYPT_THEN_FLASH |
| 否 | 否 | DIRECT_FLASH |

流式引擎按偏移直接读取原始包，加密与否由引擎自己处理；
只有单槽设备的整包安装器无法读取加密文件，需要先在本地解密。
"""

from enum import Enum
from typing import Optional

from ..package import HeaderProperties, LocateErrorKind, LocateFailure, PayloadLocation, UpdatePackage
from ..platform.base import PlatformServices, StreamingEngine
from ..utils import select_logger as logger
from . import status as st
from .decrypting_installer import DecryptingInstaller, DecryptTask
from .status import StatusChannel


class InstallStrategy(str, Enum):
    """安装策略"""
    STREAMING_APPLY = "streaming_apply"
    DECRYPT_THEN_FLASH = "decrypt_then_flash"
    DIRECT_FLASH = "direct_flash"


class InstallStrategySelector:
    """安装策略选择器"""

    def __init__(self, performance_mode: bool = True):
        self.performance_mode = performance_mode

    @staticmethod
    def select(has_two_slots: bool, is_encrypted: bool) -> InstallStrategy:
        if has_two_slots:
            return InstallStrategy.STREAMING_APPLY
        if is_encrypted:
            return InstallStrategy.DECRYPT_THEN_FLASH
        return InstallStrategy.DIRECT_FLASH

    def prepare_streaming(self, engine: StreamingEngine) -> bool:
        """流式应用前请求性能模式

        尽力而为：失败只记录日志，不阻止刷写。

        Returns:
            bool: 是否设置成功
        """
        if not self.performance_mode:
            return False
        try:
            engine.set_performance_mode(True)
        except Exception as e:
            logger.warning(f"设置性能模式失败: {e}")
            return False
        logger.info("已开启性能模式")
        return True

    def dispatch(
        self,
        strategy: InstallStrategy,
        package: UpdatePackage,
        location: PayloadLocation,
        properties: HeaderProperties,
        platform: PlatformServices,
        decrypting_installer: DecryptingInstaller,
        status: Optional[StatusChannel] = None,
    ) -> Optional[DecryptTask]:
        """把更新包交给策略对应的安装方式

        流式应用只启动引擎即返回；解密安装返回后台任务句柄；
        直接安装在当前线程同步完成。安装方式抛出的异常原样向上传递。

        Raises:
            LocateFailure: 流式应用时 payload 条目是压缩存储的

        Returns:
            Optional[DecryptTask]: 仅 DECRYPT_THEN_FLASH 时返回任务
        """
        publish = status.publish if status is not None else (lambda message: None)
        logger.info(f"安装策略: {strategy.value}")

        if strategy == InstallStrategy.STREAMING_APPLY:
            if location.compressed:
                # 引擎按偏移读取原始字节，压缩条目无法直接应用
                raise LocateFailure(
                    LocateErrorKind.MALFORMED,
                    f"payload 条目不是 STORED 存储，无法流式应用: {package.path}",
                )
            self.prepare_streaming(platform.engine)
            length = package.declared_size
            if length is None:
                length = location.length
                logger.debug(f"未声明 payload 大小，使用条目大小 {length}")
            publish(st.APPLYING)
            platform.engine.apply_payload(
                str(package.path.absolute()),
                location.offset,
                length,
                list(properties),
            )
            return None

        if strategy == InstallStrategy.DECRYPT_THEN_FLASH:
            return decrypting_installer.install(package.path)

        publish(st.INSTALLING)
        platform.installer.install_package(package.path)
        publish(st.INSTALLED)
        return None


def select_strategy(has_two_slots: bool, is_encrypted: bool) -> InstallStrategy:
    """便捷函数：选择安装策略"""
    return InstallStrategySelector.select(has_two_slots, is_encrypted)
