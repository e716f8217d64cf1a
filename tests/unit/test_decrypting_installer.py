"""
解密安装器单元测试

覆盖拷贝 → 权限 → 取消检查 → 安装 的顺序、取消与失败时的产物清理。
"""

import os
import stat
import threading
from pathlib import Path

import pytest

from otastage.install import (
    CancellationToken,
    DecryptJob,
    DecryptState,
    DecryptTask,
    DecryptingInstaller,
    StatusChannel,
)
from otastage.install import decrypting_installer as di
from otastage.install import status as st
from otastage.package import CopyFailure, InstallFailure

WAIT = 10


class RecordingInstaller:
    """记录调用的整包安装器"""

    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.contents = []

    def install_package(self, path):
        self.calls.append(Path(path))
        self.contents.append(Path(path).read_bytes())
        if self.error:
            raise self.error


class BlockingInstaller(RecordingInstaller):
    """安装开始后阻塞，直到 release 被设置"""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def install_package(self, path):
        super().install_package(path)
        self.started.set()
        self.release.wait(WAIT)


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "update.zip"
    path.write_bytes(os.urandom(300 * 1024))
    path.chmod(0o600)
    return path


class TestCancellationToken:
    """CancellationToken 测试"""

    def test_cancel_before_commit(self):
        token = CancellationToken()

        assert token.cancel()
        assert token.cancelled
        assert not token.commit()

    def test_cancel_after_commit_rejected(self):
        token = CancellationToken()

        assert token.commit()
        assert not token.cancel()
        assert not token.cancelled


class TestDecryptJob:
    """DecryptJob 测试"""

    def test_destination_derived_from_source(self, tmp_path):
        job = DecryptJob.for_source(tmp_path / "update.zip")

        assert job.destination == tmp_path / "update.zip.decrypt"
        assert job.source.is_absolute()

    def test_custom_suffix(self, tmp_path):
        job = DecryptJob.for_source(tmp_path / "a.zip", ".plain")

        assert job.destination.name == "a.zip.plain"


class TestDecryptingInstaller:
    """DecryptingInstaller 测试"""

    def test_copy_then_install(self, source):
        """成功路径：安装器拿到与源内容一致的解密产物"""
        installer = RecordingInstaller()
        status = StatusChannel()

        task = DecryptingInstaller(installer, chunk_size=4096, status=status).install(source)
        outcome = task.wait(WAIT)

        assert outcome is not None and outcome.succeeded
        assert task.state == DecryptState.INSTALLED
        assert outcome.bytes_copied == source.stat().st_size
        assert installer.calls == [task.job.destination]
        assert installer.contents[0] == source.read_bytes()
        assert status.history == [st.DECRYPTING, st.INSTALLING, st.INSTALLED]

    @pytest.mark.skipif(os.name != 'posix', reason="仅 POSIX 权限位")
    def test_source_permissions_hardened(self, source):
        """拷贝后源文件权限为 0644"""
        task = DecryptingInstaller(RecordingInstaller()).install(source)
        task.wait(WAIT)

        assert stat.S_IMODE(source.stat().st_mode) == 0o644

    def test_permission_failure_not_fatal(self, source, monkeypatch):
        def failing_chmod(*args, **kwargs):
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr(di.os, "chmod", failing_chmod)
        installer = RecordingInstaller()

        outcome = DecryptingInstaller(installer).install(source).wait(WAIT)

        assert outcome.state == DecryptState.INSTALLED
        assert len(installer.calls) == 1

    def test_copy_failure_cleans_up(self, source, monkeypatch):
        """拷贝中途失败：删除部分产物，报告 CopyFailure，不安装"""
        def partial_copy(src, dst, chunk_size):
            Path(dst).write_bytes(b"partial")
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(di, "copy_file", partial_copy)
        installer = RecordingInstaller()
        status = StatusChannel()

        task = DecryptingInstaller(installer, status=status).install(source)
        outcome = task.wait(WAIT)

        assert outcome.state == DecryptState.COPY_FAILED
        assert isinstance(outcome.error, CopyFailure)
        assert isinstance(outcome.error.cause, OSError)
        assert not task.job.destination.exists()
        assert installer.calls == []
        assert status.current.startswith("Error:")

    def test_missing_source(self, tmp_path):
        installer = RecordingInstaller()

        task = DecryptingInstaller(installer).install(tmp_path / "gone.zip")
        outcome = task.wait(WAIT)

        assert outcome.state == DecryptState.COPY_FAILED
        assert not task.job.destination.exists()
        assert installer.calls == []

    def test_cancelled_after_copy(self, source):
        """拷贝完成、检查取消之前被取消：不安装且不留产物"""
        class CancelDuringHardening(DecryptingInstaller):
            def _harden_permissions(self, job):
                assert job.destination.exists()
                job.token.cancel()
                super()._harden_permissions(job)

        installer = RecordingInstaller()
        status = StatusChannel()

        task = CancelDuringHardening(installer, status=status).install(source)
        outcome = task.wait(WAIT)

        assert outcome.state == DecryptState.CANCELLED
        assert not task.job.destination.exists()
        assert installer.calls == []
        assert status.current == st.CANCELLED
        assert source.exists()

    def test_cancel_during_copy_observed_afterwards(self, source, monkeypatch):
        """拷贝期间的取消不会打断拷贝，拷贝结束后丢弃产物"""
        copying = threading.Event()
        release = threading.Event()
        real_copy = di.copy_file

        def slow_copy(src, dst, chunk_size):
            copying.set()
            release.wait(WAIT)
            return real_copy(src, dst, chunk_size)

        monkeypatch.setattr(di, "copy_file", slow_copy)
        installer = RecordingInstaller()

        task = DecryptingInstaller(installer).install(source)
        assert copying.wait(WAIT)
        assert task.state == DecryptState.COPYING
        assert task.cancel()
        release.set()
        outcome = task.wait(WAIT)

        assert outcome.state == DecryptState.CANCELLED
        assert outcome.bytes_copied == source.stat().st_size
        assert not task.job.destination.exists()
        assert installer.calls == []

    def test_cancel_after_install_started(self, source):
        """进入安装后取消无效"""
        installer = BlockingInstaller()

        task = DecryptingInstaller(installer).install(source)
        assert installer.started.wait(WAIT)
        assert task.state == DecryptState.INSTALLING
        assert not task.cancel()
        installer.release.set()

        assert task.wait(WAIT).state == DecryptState.INSTALLED

    def test_install_failure_keeps_artifact(self, source):
        """安装失败：报告 InstallFailure，产物留给安装器处理"""
        installer = RecordingInstaller(error=RuntimeError("verification failed"))

        task = DecryptingInstaller(installer).install(source)
        outcome = task.wait(WAIT)

        assert outcome.state == DecryptState.INSTALL_FAILED
        assert isinstance(outcome.error, InstallFailure)
        assert isinstance(outcome.error.cause, RuntimeError)
        assert task.job.destination.exists()

    def test_install_failure_passthrough(self, source):
        failure = InstallFailure("rejected")
        installer = RecordingInstaller(error=failure)

        outcome = DecryptingInstaller(installer).install(source).wait(WAIT)

        assert outcome.error is failure

    def test_run_synchronously(self, source):
        """run() 可在当前线程直接执行"""
        installer = RecordingInstaller()
        task = DecryptTask(DecryptJob.for_source(source))

        outcome = DecryptingInstaller(installer).run(task)

        assert outcome.succeeded
        assert task.done
        assert not task.cancel()

    def test_wait_timeout(self, source):
        installer = BlockingInstaller()

        task = DecryptingInstaller(installer).install(source)
        assert installer.started.wait(WAIT)
        assert task.wait(0.01) is None
        assert not task.done
        installer.release.set()
        assert task.wait(WAIT).succeeded


class TestCopyFile:
    def test_copies_all_bytes(self, source, tmp_path):
        target = tmp_path / "copy.bin"

        copied = di.copy_file(source, target, chunk_size=1000)

        assert copied == source.stat().st_size
        assert target.read_bytes() == source.read_bytes()
