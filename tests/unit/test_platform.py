"""
平台协作方单元测试
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from otastage.config.schema import OtaStageConfig
from otastage.package import InstallFailure
from otastage.platform import (
    EncryptedRootsDetector,
    GetpropCapability,
    RecoveryCommandInstaller,
    StaticCapability,
    StaticEncryption,
    StreamingEngine,
    UpdateEngineClient,
    build_platform,
)


class TestUpdateEngineClient:
    """UpdateEngineClient 测试"""

    def test_apply_args(self):
        popen = MagicMock()
        client = UpdateEngineClient(popen=popen)

        client.apply_payload("/data/ota/update.zip", 1040, 123456, ["A=1", "B=2"])

        args = popen.call_args[0][0]
        assert args == [
            "update_engine_client",
            "--update",
            "--payload=file:///data/ota/update.zip",
            "--offset=1040",
            "--size=123456",
            "--headers=A=1\nB=2",
        ]
        assert client.processes == [popen.return_value]

    def test_finished_processes_reaped(self):
        """已退出的客户端进程在下次启动时被回收"""
        finished, running = MagicMock(), MagicMock()
        finished.poll.return_value = 0
        running.poll.return_value = None
        popen = MagicMock(side_effect=[finished, running, MagicMock()])
        client = UpdateEngineClient(popen=popen)

        client.apply_payload("/u.zip", 0, 1, [])
        client.apply_payload("/u.zip", 0, 1, [])
        client.apply_payload("/u.zip", 0, 1, [])

        assert finished not in client.processes
        assert client.processes[0] is running
        assert len(client.processes) == 2

    def test_empty_headers(self):
        args = UpdateEngineClient().build_apply_args("/u.zip", 0, 1, [])

        assert args[-1] == "--headers="

    def test_custom_client(self):
        client = UpdateEngineClient(client=["adb", "shell", "update_engine_client"])

        args = client.build_apply_args("/u.zip", 0, 1, [])

        assert args[:3] == ["adb", "shell", "update_engine_client"]

    def test_performance_mode_skipped_without_command(self):
        run = MagicMock()

        UpdateEngineClient(run=run).set_performance_mode(True)

        run.assert_not_called()

    def test_performance_command_placeholder(self):
        run = MagicMock()
        client = UpdateEngineClient(performance_command=["perfctl", "--boost={enabled}"], run=run)

        client.set_performance_mode(False)

        assert run.call_args[0][0] == ["perfctl", "--boost=false"]
        assert run.call_args[1]['check'] is True

    def test_performance_command_failure_propagates(self):
        run = MagicMock(side_effect=subprocess.CalledProcessError(1, "perfctl"))
        client = UpdateEngineClient(performance_command=["perfctl"], run=run)

        with pytest.raises(subprocess.CalledProcessError):
            client.set_performance_mode(True)

    def test_satisfies_protocol(self):
        assert isinstance(UpdateEngineClient(), StreamingEngine)


class TestRecoveryCommandInstaller:
    """RecoveryCommandInstaller 测试"""

    def test_writes_command_file(self, tmp_path):
        package = tmp_path / "update.zip.decrypt"
        package.write_bytes(b"PK")
        command_file = tmp_path / "recovery" / "command"

        RecoveryCommandInstaller(command_file, locale="en_US").install_package(package)

        assert command_file.read_text(encoding='utf-8').splitlines() == [
            f"--update_package={package}",
            "--locale=en_US",
        ]

    def test_unreadable_package(self, tmp_path):
        command_file = tmp_path / "command"

        with pytest.raises(InstallFailure) as exc_info:
            RecoveryCommandInstaller(command_file).install_package(tmp_path / "missing.zip")

        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert not command_file.exists()

    def test_command_file_not_writable(self, tmp_path):
        package = tmp_path / "update.zip"
        package.write_bytes(b"PK")
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")

        with pytest.raises(InstallFailure):
            RecoveryCommandInstaller(blocker / "command").install_package(package)


class TestGetpropCapability:
    """GetpropCapability 测试"""

    @pytest.mark.parametrize("stdout,expected", [
        ("true\n", True),
        ("TRUE", True),
        ("false\n", False),
        ("", False),
    ])
    def test_parses_property(self, stdout, expected):
        run = MagicMock(return_value=subprocess.CompletedProcess([], 0, stdout=stdout, stderr=""))

        assert GetpropCapability(run=run).has_two_updatable_slots() is expected
        assert run.call_args[0][0] == ["getprop", "ro.build.ab_update"]

    def test_missing_getprop(self):
        run = MagicMock(side_effect=FileNotFoundError("getprop"))

        assert GetpropCapability(run=run).has_two_updatable_slots() is False

    def test_timeout(self):
        run = MagicMock(side_effect=subprocess.TimeoutExpired("getprop", 10))

        assert GetpropCapability(run=run).has_two_updatable_slots() is False


class TestEncryptedRootsDetector:
    """EncryptedRootsDetector 测试"""

    def test_under_root(self, tmp_path):
        detector = EncryptedRootsDetector([str(tmp_path / "data")])

        assert detector.is_encrypted(tmp_path / "data" / "ota" / "update.zip")
        assert not detector.is_encrypted(tmp_path / "sdcard" / "update.zip")

    def test_sibling_prefix_not_matched(self, tmp_path):
        detector = EncryptedRootsDetector([str(tmp_path / "data")])

        assert not detector.is_encrypted(tmp_path / "data2" / "update.zip")

    def test_no_roots(self, tmp_path):
        assert not EncryptedRootsDetector([]).is_encrypted(tmp_path / "update.zip")


class TestBuildPlatform:
    """build_platform 测试"""

    def test_defaults(self):
        platform = build_platform()

        assert isinstance(platform.engine, UpdateEngineClient)
        assert isinstance(platform.installer, RecoveryCommandInstaller)
        assert platform.installer.command_file == Path("/cache/recovery/command")
        assert isinstance(platform.capability, GetpropCapability)
        assert isinstance(platform.encryption, EncryptedRootsDetector)

    def test_overrides(self):
        platform = build_platform(two_slots=False, encrypted=True)

        assert isinstance(platform.capability, StaticCapability)
        assert platform.capability.has_two_updatable_slots() is False
        assert isinstance(platform.encryption, StaticEncryption)
        assert platform.encryption.is_encrypted(Path("/anything")) is True

    def test_ab_mode_from_config(self, tmp_path):
        config = OtaStageConfig.from_dict({
            'device': {'ab_update': 'true'},
            'recovery': {'command_file': str(tmp_path / "command")},
        })

        platform = build_platform(config)

        assert platform.capability.has_two_updatable_slots() is True
        assert platform.installer.command_file == tmp_path / "command"
