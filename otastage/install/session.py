"""
更新会话

由调用方显式创建并持有，负责一次或多次更新尝试：
定位 payload → 读取属性 → 选择策略 → 分派到对应安装方式。
定位、读取与选择都在调用方线程同步完成；只有解密安装在后台执行。
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from ..config.schema import OtaStageConfig
from ..package import (
    HeaderProperties,
    HeaderPropertyReader,
    InstallFailure,
    OtaStageError,
    PayloadLocation,
    PayloadLocator,
    UpdatePackage,
)
from ..platform.base import PlatformServices
from ..utils import session_logger as logger
from . import status as st
from .decrypting_installer import DecryptingInstaller, DecryptTask
from .status import StatusChannel
from .strategy import InstallStrategy, InstallStrategySelector


@dataclass
class InstallSession:
    """一次更新尝试的记录"""
    package: Optional[UpdatePackage]
    location: PayloadLocation = field(default_factory=PayloadLocation)
    properties: HeaderProperties = field(default_factory=list)
    strategy: Optional[InstallStrategy] = None
    task: Optional[DecryptTask] = None
    error: Optional[OtaStageError] = None

    @property
    def dispatched(self) -> bool:
        """是否已交给安装方式（异步任务的最终结果见 task）"""
        return self.strategy is not None and self.error is None


class UpdateSession:
    """更新会话

    用法::

        with UpdateSession(build_platform(config), config) as session:
            result = session.prepare_update(UpdatePackage.from_path(path, size))
            if result.task:
                result.task.wait()

    退出时取消所有尚未进入安装的解密任务。
    """

    def __init__(
        self,
        platform: PlatformServices,
        config: Optional[OtaStageConfig] = None,
        status: Optional[StatusChannel] = None,
    ):
        self.platform = platform
        self.config = config or OtaStageConfig()
        self.status = status or StatusChannel()
        self.locator = PayloadLocator()
        self.reader = HeaderPropertyReader()
        self.selector = InstallStrategySelector(self.config.engine.performance_mode)
        self.decrypting_installer = DecryptingInstaller(
            platform.installer,
            suffix=self.config.decrypt.suffix,
            chunk_size=self.config.decrypt.chunk_size,
            source_mode=self.config.decrypt.source_mode,
            status=self.status,
        )
        self._tasks: List[DecryptTask] = []
        self._closed = False

    @property
    def tasks(self) -> List[DecryptTask]:
        return list(self._tasks)

    def prepare_update(self, package: Optional[Union[UpdatePackage, str, Path]]) -> InstallSession:
        """执行一次更新尝试

        Args:
            package: 更新包；None 或不存在的文件视为无效输入

        Returns:
            InstallSession: 本次尝试的记录，失败时 error 非空
        """
        if self._closed:
            raise RuntimeError("会话已关闭")

        if isinstance(package, (str, Path)):
            package = UpdatePackage.from_path(package)

        if package is None or not package.path.is_file():
            logger.error(f"更新包无效: {package.path if package else None}")
            self.status.publish(st.INVALID_FILE)
            return InstallSession(package, error=OtaStageError("更新包为空或无效"))

        self.status.publish(st.PREPARING)
        logger.info(f"准备更新: {package.path}")
        session = InstallSession(package)

        session.location = self.locator.locate(package.path, self.config.package.payload_entry)
        if not session.location.resolved:
            session.error = session.location.error
            logger.error(f"无效的 payload 偏移: {session.location.offset}")
            self.status.publish(st.error_status(str(session.error)))
            return session

        session.properties = self.reader.read_properties(package.path, self.config.package.properties_entry)

        try:
            self._dispatch(session)
        except Exception as e:
            session.error = e if isinstance(e, OtaStageError) else InstallFailure("分派更新失败", e)
            logger.error(str(session.error))
            self.status.publish(st.error_status(str(session.error)))

        return session

    def _dispatch(self, session: InstallSession) -> None:
        two_slots = self.platform.capability.has_two_updatable_slots()
        # 流式引擎自行处理加密，双槽设备不需要探测
        encrypted = False if two_slots else self.platform.encryption.is_encrypted(session.package.path)
        session.strategy = self.selector.select(two_slots, encrypted)
        session.task = self.selector.dispatch(
            session.strategy,
            session.package,
            session.location,
            session.properties,
            self.platform,
            self.decrypting_installer,
            self.status,
        )
        if session.task is not None:
            self._tasks.append(session.task)

    def close(self) -> int:
        """取消未完成的解密任务，返回成功发出取消的任务数"""
        self._closed = True
        cancelled = sum(1 for task in self._tasks if task.cancel())
        if cancelled:
            logger.warning(f"会话关闭，已取消 {cancelled} 个解密任务")
        return cancelled

    def __enter__(self) -> 'UpdateSession':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
