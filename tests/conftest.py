"""测试公共工具：构造 OTA 更新包"""

import zipfile
from pathlib import Path
from typing import Dict, Optional

import pytest

PAYLOAD_ENTRY = "payload.bin"
PROPERTIES_ENTRY = "payload_properties.txt"

SAMPLE_PROPERTIES = (
    "FILE_HASH=lURPCIkIAjtMOyB/EjQcl8zDzqtD6Ta3tJef6G/+z2k=\n"
    "FILE_SIZE=871903868\n"
    "METADATA_HASH=tBvj43QOB0Jn++JojcpVdbRLz0qdAuL+uTkSy7hokaw=\n"
    "METADATA_SIZE=70604\n"
)


def build_zip(
    path: Path,
    entries: Dict[str, bytes],
    prefix: bytes = b"",
    compress_type: int = zipfile.ZIP_STORED,
    extras: Optional[Dict[str, bytes]] = None,
) -> Path:
    """写出 zip 文件

    Args:
        entries: 条目名 -> 内容（按插入顺序写入）
        prefix: 写在 zip 数据之前的任意字节，用于控制第一个本地文件头的偏移
        extras: 条目名 -> extra 字段
    """
    extras = extras or {}
    path.write_bytes(prefix)
    with zipfile.ZipFile(path, 'a') as zf:
        for name, data in entries.items():
            info = zipfile.ZipInfo(name, date_time=(2024, 1, 1, 0, 0, 0))
            info.compress_type = compress_type
            if name in extras:
                info.extra = extras[name]
            zf.writestr(info, data)
    return path


@pytest.fixture
def ota_package(tmp_path):
    """标准 A/B OTA 包：payload.bin + payload_properties.txt"""
    payload = bytes(range(256)) * 64
    path = build_zip(
        tmp_path / "update.zip",
        {
            "META-INF/com/android/metadata": b"ota-type=AB\n",
            PAYLOAD_ENTRY: payload,
            PROPERTIES_ENTRY: SAMPLE_PROPERTIES.encode('utf-8'),
        },
    )
    return path, payload
