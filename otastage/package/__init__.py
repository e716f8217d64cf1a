"""更新包解析模块

定位 payload 偏移、读取 payload 属性。
"""

from .errors import (
    OtaStageError,
    LocateErrorKind,
    LocateFailure,
    PropertyReadFailure,
    CopyFailure,
    InstallFailure,
    PermissionFailure,
)
from .models import UpdatePackage, PayloadLocation, HeaderProperties, UNRESOLVED_OFFSET
from .locator import PayloadLocator, locate_payload, LOCAL_HEADER_SIZE
from .properties import HeaderPropertyReader, read_properties

__all__ = [
    # 错误
    "OtaStageError",
    "LocateErrorKind",
    "LocateFailure",
    "PropertyReadFailure",
    "CopyFailure",
    "InstallFailure",
    "PermissionFailure",

    # 数据结构
    "UpdatePackage",
    "PayloadLocation",
    "HeaderProperties",
    "UNRESOLVED_OFFSET",

    # 组件
    "PayloadLocator",
    "locate_payload",
    "LOCAL_HEADER_SIZE",
    "HeaderPropertyReader",
    "read_properties",
]
