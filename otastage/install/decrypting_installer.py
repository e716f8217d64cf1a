"""
解密安装器

单槽设备上的加密包：先在后台把源包逐字节拷贝到 ``<源路径>.decrypt``
（从加密存储读出即完成解密），再交给整包安装器。

步骤顺序固定：拷贝 → 收紧源文件权限 → 检查取消 → 安装。
取消是协作式的，只在拷贝完成后检查一次；拷贝过程中不会被打断。
任务在安装开始前独占解密产物，取消或拷贝失败时负责删除它。
"""

import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..config.schema import DEFAULT_DECRYPT_SUFFIX, DEFAULT_SOURCE_MODE
from ..package.errors import CopyFailure, InstallFailure, OtaStageError, PermissionFailure
from ..platform.base import FullImageInstaller
from ..utils import copy_logger, derive_artifact_path, install_logger, perms_logger
from . import status as st
from .status import StatusChannel

DEFAULT_CHUNK_SIZE = 256 * 1024


class DecryptState(str, Enum):
    """解密任务状态"""
    IDLE = "idle"
    COPYING = "copying"
    PERMISSIONS_HARDENING = "permissions_hardening"
    INSTALLING = "installing"
    # 终态
    INSTALLED = "installed"
    CANCELLED = "cancelled"
    COPY_FAILED = "copy_failed"
    INSTALL_FAILED = "install_failed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    DecryptState.INSTALLED,
    DecryptState.CANCELLED,
    DecryptState.COPY_FAILED,
    DecryptState.INSTALL_FAILED,
    DecryptState.FAILED,
})


class CancellationToken:
    """取消令牌

    cancel() 与 commit() 在同一把锁下互斥：commit 成功后任务已进入安装，
    之后的 cancel 不再生效；cancel 先发生则 commit 失败。
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._committed = False

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def cancel(self) -> bool:
        """请求取消，返回请求是否仍然有效"""
        with self._lock:
            if self._committed:
                return False
            self._cancelled = True
            return True

    def commit(self) -> bool:
        """未被取消时标记为进入安装，返回是否可以继续"""
        with self._lock:
            if self._cancelled:
                return False
            self._committed = True
            return True


@dataclass(frozen=True)
class DecryptJob:
    """一次解密安装作业"""
    source: Path
    destination: Path
    token: CancellationToken = field(default_factory=CancellationToken, compare=False)

    @classmethod
    def for_source(cls, source: Union[str, Path], suffix: str = DEFAULT_DECRYPT_SUFFIX) -> 'DecryptJob':
        source = Path(source).absolute()
        return cls(source=source, destination=derive_artifact_path(source, suffix))


@dataclass(frozen=True)
class DecryptOutcome:
    """任务结果"""
    state: DecryptState
    error: Optional[OtaStageError] = None
    bytes_copied: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == DecryptState.INSTALLED


def copy_file(source: Path, destination: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """逐块拷贝文件，返回拷贝的字节数

    Raises:
        OSError: 读写失败
    """
    copied = 0
    with open(source, 'rb') as src, open(destination, 'wb') as dst:
        while True:
            chunk = src.read(chunk_size)
            if not chunk:
                break
            dst.write(chunk)
            copied += len(chunk)
        dst.flush()
        os.fsync(dst.fileno())
    return copied


class DecryptTask:
    """后台解密任务句柄

    调用方通过它观察完成情况、等待结果或请求取消。
    """

    def __init__(self, job: DecryptJob):
        self.job = job
        self._lock = threading.Lock()
        self._state = DecryptState.IDLE
        self._outcome: Optional[DecryptOutcome] = None
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> DecryptState:
        with self._lock:
            return self._state

    @property
    def outcome(self) -> Optional[DecryptOutcome]:
        with self._lock:
            return self._outcome

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self) -> bool:
        """请求取消；任务已开始安装或已结束时返回 False"""
        if self.done:
            return False
        return self.job.token.cancel()

    def wait(self, timeout: Optional[float] = None) -> Optional[DecryptOutcome]:
        """等待任务结束，超时返回 None"""
        if not self._done.wait(timeout):
            return None
        return self.outcome

    def _set_state(self, state: DecryptState) -> None:
        with self._lock:
            self._state = state

    def _finish(self, outcome: DecryptOutcome) -> None:
        with self._lock:
            self._state = outcome.state
            self._outcome = outcome
        self._done.set()


class DecryptingInstaller:
    """解密后整包安装"""

    def __init__(
        self,
        installer: FullImageInstaller,
        suffix: str = DEFAULT_DECRYPT_SUFFIX,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        source_mode: int = DEFAULT_SOURCE_MODE,
        status: Optional[StatusChannel] = None,
    ):
        self.installer = installer
        self.suffix = suffix
        self.chunk_size = chunk_size
        self.source_mode = source_mode
        self.status = status

    def install(self, source: Union[str, Path]) -> DecryptTask:
        """在后台线程启动解密安装，立即返回任务句柄"""
        task = DecryptTask(DecryptJob.for_source(source, self.suffix))
        # 非守护线程：解释器退出前会等待任务走完清理
        thread = threading.Thread(
            target=self.run,
            args=(task,),
            name=f"decrypt-{task.job.source.name}",
            daemon=False,
        )
        task._thread = thread
        thread.start()
        return task

    def run(self, task: DecryptTask) -> DecryptOutcome:
        """在当前线程执行任务（后台线程入口）"""
        try:
            outcome = self._execute(task)
        except Exception as e:
            install_logger.exception("解密安装意外失败", e)
            self._discard(task.job.destination)
            outcome = DecryptOutcome(DecryptState.FAILED, OtaStageError("解密安装意外失败", e))
            self._publish(st.error_status(str(e)))
        task._finish(outcome)
        return outcome

    def _execute(self, task: DecryptTask) -> DecryptOutcome:
        job = task.job

        task._set_state(DecryptState.COPYING)
        self._publish(st.DECRYPTING)
        copy_logger.info(f"拷贝 {job.source} -> {job.destination}")
        try:
            copied = copy_file(job.source, job.destination, self.chunk_size)
        except OSError as e:
            failure = CopyFailure(f"无法拷贝更新包 {job.source}", e)
            copy_logger.error(str(failure))
            self._discard(job.destination)
            self._publish(st.error_status("Could not copy update"))
            return DecryptOutcome(DecryptState.COPY_FAILED, failure)

        task._set_state(DecryptState.PERMISSIONS_HARDENING)
        self._harden_permissions(job)

        if not job.token.commit():
            install_logger.warning(f"任务已取消，删除 {job.destination}")
            self._discard(job.destination)
            self._publish(st.CANCELLED)
            return DecryptOutcome(DecryptState.CANCELLED, bytes_copied=copied)

        # 从这里开始产物交给安装器，失败时也不再由本任务删除
        task._set_state(DecryptState.INSTALLING)
        self._publish(st.INSTALLING)
        try:
            self.installer.install_package(job.destination)
        except Exception as e:
            failure = e if isinstance(e, InstallFailure) else InstallFailure("整包安装失败", e)
            install_logger.error(str(failure))
            self._publish(st.error_status(str(failure)))
            return DecryptOutcome(DecryptState.INSTALL_FAILED, failure, copied)

        install_logger.success(f"安装请求已提交: {job.destination}")
        self._publish(st.INSTALLED)
        return DecryptOutcome(DecryptState.INSTALLED, bytes_copied=copied)

    def _harden_permissions(self, job: DecryptJob) -> None:
        """将源文件权限设为固定值，失败只记录"""
        try:
            os.chmod(job.source, self.source_mode)
        except OSError as e:
            perms_logger.warning(str(PermissionFailure(f"设置文件权限失败 {job.source}", e)))

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            copy_logger.warning(f"删除 {path} 失败: {e}")

    def _publish(self, message: str) -> None:
        if self.status is not None:
            self.status.publish(message)
