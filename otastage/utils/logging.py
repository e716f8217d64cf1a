"""
日志输出门面

所有组件经由同一个 OutputFacade 输出，每条消息带时间、级别与阶段标记：

    12:03:44 WARNING PROPS 读取属性条目 payload_properties.txt 失败，按无属性处理

ERROR 写 stderr，其余写 stdout；配置日志文件后同时追加一行带日期的纯文本。
后台解密线程与调用方线程共用门面，输出在锁内完成，行不会交错。
"""

import atexit
import threading
from datetime import datetime
from pathlib import Path
from typing import IO, Optional, Union

from rich.console import Console


class OutputLevel:
    """输出级别"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


# 级别 -> (过滤权重, 控制台样式)
_LEVELS = {
    OutputLevel.DEBUG: (10, "dim"),
    OutputLevel.INFO: (20, "default"),
    OutputLevel.SUCCESS: (20, "green"),
    OutputLevel.WARNING: (30, "yellow"),
    OutputLevel.ERROR: (40, "red bold"),
}


class LogStage:
    """阶段标记，对应更新流程中的各个组件"""
    LOCATE = "LOCATE"
    PROPS = "PROPS"
    SELECT = "SELECT"
    ENGINE = "ENGINE"
    COPY = "COPY"
    PERMS = "PERMS"
    INSTALL = "INSTALL"
    SESSION = "SESSION"


class OutputFacade:
    """输出门面"""

    def __init__(self):
        self._lock = threading.RLock()
        self._threshold = _LEVELS[OutputLevel.INFO][0]
        self._level = OutputLevel.INFO
        self._log_file: Optional[IO[str]] = None
        # 不传 file：每次输出时取当时的 sys.stdout / sys.stderr
        self._stdout = Console(highlight=False, log_path=False)
        self._stderr = Console(stderr=True, highlight=False, log_path=False)

    def emit(self, message: str, level: str = OutputLevel.INFO, stage: Optional[str] = None):
        weight, style = _LEVELS.get(level, _LEVELS[OutputLevel.INFO])
        if weight < self._threshold:
            return

        now = datetime.now()
        tag = f"{level} {stage}" if stage else level
        with self._lock:
            console = self._stderr if level == OutputLevel.ERROR else self._stdout
            console.print(f"[dim]{now:%H:%M:%S}[/dim] [bold]{tag}[/bold]", end=" ")
            # 消息不解析 markup，路径中的方括号原样输出
            console.print(message, style=style, markup=False)
            if self._log_file is not None:
                self._append(f"{now:%Y-%m-%d %H:%M:%S} [{level}]" + (f" [{stage}]" if stage else "") + f" {message}")

    def _append(self, line: str):
        try:
            self._log_file.write(line + "\n")
            self._log_file.flush()
        except OSError:
            # 日志文件不可写时只保留控制台输出
            self._release_file()

    def set_level(self, level: str):
        """设置最低输出级别，未知级别被忽略"""
        level = level.upper()
        if level not in _LEVELS:
            return
        with self._lock:
            self._level = level
            self._threshold = _LEVELS[level][0]

    def get_level(self) -> str:
        return self._level

    def set_log_file(self, file_path: Union[str, Path]):
        """追加写入日志文件，替换之前的文件"""
        path = Path(file_path)
        with self._lock:
            self._release_file()
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                self._log_file = open(path, 'a', encoding='utf-8')
            except OSError as e:
                self.emit(f"无法打开日志文件 {path}: {e}", OutputLevel.WARNING)

    def _release_file(self):
        handle, self._log_file = self._log_file, None
        if handle is not None:
            try:
                handle.close()
            except OSError:
                pass

    def close(self):
        with self._lock:
            self._release_file()


_facade: Optional[OutputFacade] = None
_facade_lock = threading.Lock()


def get_output_facade() -> OutputFacade:
    global _facade
    with _facade_lock:
        if _facade is None:
            _facade = OutputFacade()
        return _facade


def close_logger():
    """关闭日志文件并丢弃门面，下次输出时重新创建"""
    global _facade
    with _facade_lock:
        facade, _facade = _facade, None
    if facade is not None:
        facade.close()


def configure_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None):
    """设置输出级别，可选追加日志文件"""
    facade = get_output_facade()
    facade.set_level(level)
    if log_file:
        facade.set_log_file(log_file)


class StageLogger:
    """绑定阶段标记的日志器，各模块在模块级持有一个"""

    def __init__(self, stage: str):
        self.stage = stage

    def _emit(self, message: str, level: str):
        get_output_facade().emit(message, level, self.stage)

    def debug(self, message: str):
        self._emit(message, OutputLevel.DEBUG)

    def info(self, message: str):
        self._emit(message, OutputLevel.INFO)

    def success(self, message: str):
        self._emit(message, OutputLevel.SUCCESS)

    def warning(self, message: str):
        self._emit(message, OutputLevel.WARNING)

    def error(self, message: str):
        self._emit(message, OutputLevel.ERROR)

    def exception(self, message: str, exc: BaseException):
        """ERROR 级别，附带异常类型与内容"""
        self._emit(f"{message}: {type(exc).__name__}: {exc}", OutputLevel.ERROR)


def get_stage_logger(stage: str) -> StageLogger:
    return StageLogger(stage)


locate_logger = get_stage_logger(LogStage.LOCATE)
props_logger = get_stage_logger(LogStage.PROPS)
select_logger = get_stage_logger(LogStage.SELECT)
engine_logger = get_stage_logger(LogStage.ENGINE)
copy_logger = get_stage_logger(LogStage.COPY)
perms_logger = get_stage_logger(LogStage.PERMS)
install_logger = get_stage_logger(LogStage.INSTALL)
session_logger = get_stage_logger(LogStage.SESSION)

atexit.register(close_logger)
