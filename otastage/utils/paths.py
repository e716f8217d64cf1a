"""
路径工具

更新包路径的展开、解密产物路径的推导，以及加密根目录判断。
"""

import os
from pathlib import Path
from typing import Iterable, Union

PathLike = Union[str, Path]

_SIZE_UNITS = ("KB", "MB", "GB", "TB")


def expand_path(path: PathLike) -> Path:
    """展开 ``~`` 与环境变量后转为绝对路径"""
    return Path(os.path.expanduser(os.path.expandvars(str(path)))).resolve()


def derive_artifact_path(source: PathLike, suffix: str) -> Path:
    """根据源文件路径推导中间产物路径

    结果由源路径唯一确定：``/data/ota/update.zip`` + ``.decrypt``
    得到 ``/data/ota/update.zip.decrypt``。

    Raises:
        ValueError: 后缀为空
    """
    if not suffix:
        raise ValueError("产物后缀不能为空")
    source_path = Path(source).absolute()
    return source_path.with_name(source_path.name + suffix)


def is_under_any(path: PathLike, roots: Iterable[PathLike]) -> bool:
    """判断路径是否位于任一根目录之下（含根目录本身）"""
    resolved = Path(path).resolve()
    for root in roots:
        root_path = Path(root).resolve()
        if resolved == root_path or root_path in resolved.parents:
            return True
    return False


def format_size(size_bytes: int) -> str:
    """1536 -> ``1.5 KB``，小于 1 KB 时按字节显示"""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    value = float(size_bytes)
    for unit in _SIZE_UNITS:
        value /= 1024.0
        if value < 1024.0:
            break
    return f"{value:.1f} {unit}"
