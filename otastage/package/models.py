"""
更新包相关数据结构
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .errors import LocateFailure

# 未解析偏移的哨兵值
UNRESOLVED_OFFSET = -1

# 按顺序传给流式引擎的 key=value 行
HeaderProperties = List[str]


@dataclass(frozen=True)
class UpdatePackage:
    """磁盘上的更新包

    调用方拥有该文件，本库只读取或拷贝。
    """
    path: Path
    declared_size: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.path, Path):
            object.__setattr__(self, 'path', Path(self.path))
        if self.declared_size is not None and self.declared_size < 0:
            raise ValueError(f"declared_size 不能为负数: {self.declared_size}")

    @classmethod
    def from_path(cls, path: Union[str, Path], declared_size: Optional[int] = None) -> 'UpdatePackage':
        return cls(Path(path), declared_size)


@dataclass(frozen=True)
class PayloadLocation:
    """payload 在包文件中的绝对位置

    offset 为数据区（跳过本地文件头之后）的绝对字节偏移；
    解析失败时 offset 为 UNRESOLVED_OFFSET 且 error 非空。
    """
    offset: int = UNRESOLVED_OFFSET
    length: Optional[int] = None
    compressed: bool = False
    error: Optional[LocateFailure] = None

    @property
    def resolved(self) -> bool:
        return self.error is None and self.offset >= 0

    @classmethod
    def failed(cls, error: LocateFailure) -> 'PayloadLocation':
        return cls(offset=UNRESOLVED_OFFSET, error=error)
