"""
Payload 属性读取器

读取包内的属性文本条目（每行一个 key=value），按原顺序返回。
条目缺失或不可读时返回空列表：下游引擎把缺失的属性当作
"没有额外属性"，不是致命错误。
"""

import re
import zipfile
from pathlib import Path
from typing import Union

from ..utils import props_logger as logger
from .errors import PropertyReadFailure
from .models import HeaderProperties

# 只认 \n、\r、\r\n；\x0c、\x85、\u2028 等属于行内容
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class HeaderPropertyReader:
    """属性条目读取器"""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    def read_properties(self, archive: Union[str, Path], entry_name: str) -> HeaderProperties:
        """读取属性行

        Args:
            archive: 更新包路径
            entry_name: 属性条目名

        Returns:
            HeaderProperties: 原始行列表（不去空白，不过滤），失败时为空列表
        """
        try:
            with zipfile.ZipFile(archive, 'r') as zf:
                data = zf.read(entry_name)
            lines = split_lines(data.decode(self.encoding))
        except Exception as e:
            failure = PropertyReadFailure(f"读取属性条目 {entry_name} 失败，按无属性处理", e)
            logger.warning(str(failure))
            return []

        logger.debug(f"读取到 {len(lines)} 行属性")
        return lines


def read_properties(archive: Union[str, Path], entry_name: str) -> HeaderProperties:
    """便捷函数：读取属性行"""
    return HeaderPropertyReader().read_properties(archive, entry_name)


def split_lines(text: str) -> HeaderProperties:
    """按行拆分，末尾换行不产生空行"""
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines
