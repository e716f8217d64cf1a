"""
错误分类

组件之间以值的形式传递这些错误（PayloadLocation.error、
DecryptOutcome.error 等），只有在组件内部才作为异常抛出。
"""

from enum import Enum
from typing import Optional


class OtaStageError(Exception):
    """所有 otastage 错误的基类，cause 保留原始异常"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class LocateErrorKind(str, Enum):
    """payload 定位失败的原因"""
    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"
    MALFORMED = "malformed"


class LocateFailure(OtaStageError):
    """无法确定 payload 偏移，流程必须中止"""

    def __init__(self, kind: LocateErrorKind, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.kind = kind


class PropertyReadFailure(OtaStageError):
    """属性条目缺失或不可读，降级为空属性"""
    pass


class CopyFailure(OtaStageError):
    """解密拷贝时发生 I/O 错误"""
    pass


class InstallFailure(OtaStageError):
    """下游安装器拒绝了更新包"""
    pass


class PermissionFailure(OtaStageError):
    """收紧源文件权限失败，仅记录日志"""
    pass
