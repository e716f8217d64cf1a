"""
Android 设备上的协作方实现

通过设备 shell 中的命令与平台交互：
update_engine_client 负责流式应用，recovery 命令文件负责整包安装，
getprop 探测 A/B 能力。
"""

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from ..package.errors import InstallFailure
from ..utils import engine_logger, install_logger, is_under_any, select_logger

AB_UPDATE_PROPERTY = "ro.build.ab_update"


class UpdateEngineClient:
    """update_engine_client 命令封装

    apply_payload 只负责启动客户端进程，不等待其结束；
    应用进度和结果由引擎自身上报。
    """

    def __init__(
        self,
        client: Sequence[str] = ("update_engine_client",),
        performance_command: Optional[Sequence[str]] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.client = list(client)
        self.performance_command = list(performance_command) if performance_command else None
        self._popen = popen
        self._run = run
        self.processes: List[subprocess.Popen] = []

    def build_apply_args(self, path: str, offset: int, length: int, headers: Sequence[str]) -> List[str]:
        """构造 update_engine_client 参数，属性行以换行拼接并保持顺序"""
        return self.client + [
            "--update",
            f"--payload=file://{path}",
            f"--offset={offset}",
            f"--size={length}",
            "--headers=" + "\n".join(headers),
        ]

    def apply_payload(self, path: str, offset: int, length: int, headers: Sequence[str]) -> None:
        args = self.build_apply_args(path, offset, length, headers)
        engine_logger.info(f"启动流式更新: offset={offset} size={length} headers={len(headers)}")
        process = self._popen(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        self.reap()
        self.processes.append(process)

    def reap(self) -> int:
        """回收已退出的客户端进程，返回仍在运行的数量"""
        self.processes = [p for p in self.processes if p.poll() is None]
        return len(self.processes)

    def set_performance_mode(self, enabled: bool) -> None:
        if not self.performance_command:
            engine_logger.debug("未配置性能模式命令，跳过")
            return
        value = "true" if enabled else "false"
        args = [part.replace("{enabled}", value) for part in self.performance_command]
        self._run(args, check=True, capture_output=True, text=True, timeout=30)


class RecoveryCommandInstaller:
    """通过 recovery 命令文件安装整包

    与平台整包安装器一致：先确认包文件可读，再写入
    ``--update_package=<path>``，由下次进入 recovery 时完成刷写。
    """

    def __init__(self, command_file: Path, locale: Optional[str] = None):
        self.command_file = Path(command_file)
        self.locale = locale

    def install_package(self, path: Path) -> None:
        path = Path(path).absolute()
        try:
            with open(path, 'rb') as f:
                f.read(1)
        except OSError as e:
            raise InstallFailure(f"更新包不可读 {path}", e)

        lines = [f"--update_package={path}"]
        if self.locale:
            lines.append(f"--locale={self.locale}")

        try:
            self.command_file.parent.mkdir(parents=True, exist_ok=True)
            self.command_file.write_text("\n".join(lines) + "\n", encoding='utf-8')
        except OSError as e:
            raise InstallFailure(f"写入 recovery 命令失败 {self.command_file}", e)

        install_logger.info(f"已写入 recovery 命令: {self.command_file}")


class GetpropCapability:
    """通过 getprop ro.build.ab_update 探测 A/B 设备"""

    def __init__(
        self,
        getprop: Sequence[str] = ("getprop",),
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.getprop = list(getprop)
        self._run = run

    def has_two_updatable_slots(self) -> bool:
        try:
            result = self._run(
                self.getprop + [AB_UPDATE_PROPERTY],
                capture_output=True, text=True, timeout=10, check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            select_logger.warning(f"getprop 调用失败，按单槽设备处理: {e}")
            return False
        return result.stdout.strip().lower() == "true"


class EncryptedRootsDetector:
    """位于加密存储根目录之下的文件视为已加密"""

    def __init__(self, roots: Iterable[str]):
        self.roots = [Path(r) for r in roots]

    def is_encrypted(self, path: Path) -> bool:
        return is_under_any(path, self.roots)
