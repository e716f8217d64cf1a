"""
Payload 定位器

计算 zip 包内某个条目数据区的绝对字节偏移，不解压任何内容。

流式更新引擎直接按偏移读取原始包文件，因此偏移必须精确：
中央目录只记录本地文件头的位置，而本地文件头中的文件名与
extra 字段长度可能与中央目录记录不同，必须在该位置实时读取。
"""

import struct
import zipfile
from pathlib import Path
from typing import BinaryIO, Union

from ..utils import locate_logger as logger
from .errors import LocateErrorKind, LocateFailure
from .models import PayloadLocation

# 本地文件头: signature, 版本, 标志, 压缩方法, 时间, 日期, CRC, 压缩大小, 原始大小, 文件名长度, extra 长度
LOCAL_HEADER_STRUCT = zipfile.structFileHeader
LOCAL_HEADER_SIZE = zipfile.sizeFileHeader  # 30
LOCAL_HEADER_SIGNATURE = zipfile.stringFileHeader
_LH_SIGNATURE = 0
_LH_FILENAME_LENGTH = 10
_LH_EXTRA_LENGTH = 11


class PayloadLocator:
    """payload 偏移定位器"""

    def locate(self, archive: Union[str, Path], entry_name: str) -> PayloadLocation:
        """定位条目数据区

        Args:
            archive: 更新包路径
            entry_name: zip 内条目名

        Returns:
            PayloadLocation: 成功时 offset >= 0；失败时携带 LocateFailure，
            本方法不会向调用方抛出异常
        """
        archive = Path(archive)
        try:
            with open(archive, 'rb') as fh:
                with zipfile.ZipFile(fh, 'r') as zf:
                    try:
                        info = zf.getinfo(entry_name)
                    except KeyError:
                        failure = LocateFailure(
                            LocateErrorKind.NOT_FOUND,
                            f"包中不存在条目 {entry_name}",
                        )
                        logger.error(f"{archive}: {failure}")
                        return PayloadLocation.failed(failure)

                offset = self._data_offset(fh, info.header_offset)

        except OSError as e:
            failure = LocateFailure(LocateErrorKind.IO_ERROR, f"读取更新包失败 {archive}", e)
            logger.error(str(failure))
            return PayloadLocation.failed(failure)
        except (zipfile.BadZipFile, struct.error, ValueError, EOFError) as e:
            failure = LocateFailure(LocateErrorKind.MALFORMED, f"更新包结构损坏 {archive}", e)
            logger.error(str(failure))
            return PayloadLocation.failed(failure)

        compressed = info.compress_type != zipfile.ZIP_STORED
        if compressed:
            # 引擎按原始字节读取，压缩条目的偏移虽然正确但内容不可直接使用
            logger.warning(f"条目 {entry_name} 不是 STORED 存储，流式引擎无法直接读取")

        logger.debug(
            f"{entry_name}: header_offset={info.header_offset} data_offset={offset} "
            f"length={info.compress_size}"
        )
        return PayloadLocation(offset=offset, length=info.compress_size, compressed=compressed)

    @staticmethod
    def _data_offset(fh: BinaryIO, header_offset: int) -> int:
        """读取本地文件头并返回数据区偏移

        Raises:
            zipfile.BadZipFile: 本地文件头签名错误或被截断
        """
        fh.seek(header_offset)
        raw = fh.read(LOCAL_HEADER_SIZE)
        if len(raw) != LOCAL_HEADER_SIZE:
            raise zipfile.BadZipFile(f"本地文件头被截断 (offset={header_offset})")

        fields = struct.unpack(LOCAL_HEADER_STRUCT, raw)
        if fields[_LH_SIGNATURE] != LOCAL_HEADER_SIGNATURE:
            raise zipfile.BadZipFile(f"本地文件头签名无效 (offset={header_offset})")

        return header_offset + LOCAL_HEADER_SIZE + fields[_LH_FILENAME_LENGTH] + fields[_LH_EXTRA_LENGTH]


def locate_payload(archive: Union[str, Path], entry_name: str) -> PayloadLocation:
    """便捷函数：定位条目数据区"""
    return PayloadLocator().locate(archive, entry_name)
