"""
状态通道

向观察方推送人类可读的状态字符串（"Preparing update..." 等）。
通道由会话显式持有，可以被后台解密线程与调用方线程同时使用。
"""

import threading
from collections import deque
from typing import Callable, Deque, List

from ..utils import session_logger as logger

StatusCallback = Callable[[str], None]

# 只保留最近的状态，长期运行的会话不无限增长
HISTORY_LIMIT = 100

PREPARING = "Preparing update..."
APPLYING = "Applying update..."
DECRYPTING = "Decrypting update..."
INSTALLING = "Installing update..."
INSTALLED = "Installation complete"
CANCELLED = "Update cancelled"
INVALID_FILE = "Error: File is null or invalid"


def error_status(message: str) -> str:
    return f"Error: {message}"


class StatusChannel:
    """可观察的状态值"""

    def __init__(self, initial: str = ""):
        self._lock = threading.Lock()
        self._status = initial
        self._history: Deque[str] = deque(maxlen=HISTORY_LIMIT)
        self._subscribers: List[StatusCallback] = []

    @property
    def current(self) -> str:
        with self._lock:
            return self._status

    @property
    def history(self) -> List[str]:
        with self._lock:
            return list(self._history)

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """订阅状态变化，返回取消订阅函数"""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, status: str) -> None:
        with self._lock:
            self._status = status
            self._history.append(status)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(status)
            except Exception as e:
                # 展示层的问题不影响安装流程
                logger.warning(f"状态订阅者处理失败: {e}")
