"""
配置 Schema 定义

使用 Pydantic 定义 YAML 配置模型。所有字段都有默认值，
空配置即可得到标准 Android A/B OTA 包的处理行为。
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

# 标准 OTA 包内的固定条目名
DEFAULT_PAYLOAD_ENTRY = "payload.bin"
DEFAULT_PROPERTIES_ENTRY = "payload_properties.txt"
DEFAULT_DECRYPT_SUFFIX = ".decrypt"
# owner rw / group r / others r
DEFAULT_SOURCE_MODE = 0o644


class AbUpdateMode(str, Enum):
    """设备槽位探测方式"""
    AUTO = "auto"
    TRUE = "true"
    FALSE = "false"


class LogLevel(str, Enum):
    """日志级别"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class PackageModel(BaseModel):
    """更新包条目配置"""
    payload_entry: str = Field(DEFAULT_PAYLOAD_ENTRY, description="payload 条目名", min_length=1)
    properties_entry: str = Field(DEFAULT_PROPERTIES_ENTRY, description="payload 属性条目名", min_length=1)

    @field_validator('payload_entry', 'properties_entry')
    @classmethod
    def validate_entry_name(cls, v: str) -> str:
        """条目名使用 zip 内部的正斜杠相对路径"""
        if v.startswith('/') or '\\' in v:
            raise ValueError("条目名必须是 zip 内部的相对路径（使用 /）")
        return v


class DecryptModel(BaseModel):
    """解密拷贝配置"""
    suffix: str = Field(DEFAULT_DECRYPT_SUFFIX, description="解密产物后缀", min_length=1)
    chunk_size: int = Field(
        256 * 1024,
        description="拷贝缓冲区大小（字节）",
        ge=4 * 1024,
        le=64 * 1024 * 1024,
    )
    source_mode: int = Field(DEFAULT_SOURCE_MODE, description="拷贝完成后源文件的权限位", ge=0, le=0o777)

    @field_validator('suffix')
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        if '/' in v or '\\' in v:
            raise ValueError("后缀不能包含路径分隔符")
        return v

    @field_validator('source_mode', mode='before')
    @classmethod
    def parse_mode(cls, v: Any) -> Any:
        """允许以八进制字符串书写，如 "0644" / "0o644" """
        if isinstance(v, str):
            text = v.strip().lower()
            if text.startswith('0o'):
                text = text[2:]
            try:
                return int(text, 8)
            except ValueError:
                raise ValueError(f"无效的权限位: {v}")
        return v


class EngineModel(BaseModel):
    """流式更新引擎配置"""
    performance_mode: bool = Field(True, description="流式应用前是否请求性能模式")
    client: List[str] = Field(
        default_factory=lambda: ["update_engine_client"],
        description="update_engine 客户端命令",
        min_length=1,
    )
    performance_command: Optional[List[str]] = Field(
        None,
        description="切换性能模式的命令，{enabled} 替换为 true/false",
    )


class DeviceModel(BaseModel):
    """设备能力配置"""
    ab_update: AbUpdateMode = Field(AbUpdateMode.AUTO, description="是否为 A/B 设备（auto 为 getprop 探测）")
    getprop: List[str] = Field(default_factory=lambda: ["getprop"], description="getprop 命令")
    encrypted_roots: List[str] = Field(
        default_factory=lambda: ["/data"],
        description="位于这些目录下的包视为已加密",
    )


class RecoveryModel(BaseModel):
    """整包安装（recovery）配置"""
    command_file: str = Field("/cache/recovery/command", description="recovery 命令文件路径", min_length=1)
    locale: Optional[str] = Field(None, description="写入 --locale 参数")


class LoggingModel(BaseModel):
    """日志配置"""
    level: LogLevel = Field(LogLevel.INFO, description="日志级别")
    file: Optional[Union[str, Path]] = Field(None, description="日志文件路径")


class ConfigModel(BaseModel):
    """配置元信息模型"""
    version: int = Field(1, description="配置 schema 版本", ge=1)

    @field_validator('version')
    @classmethod
    def validate_config_version(cls, v: int) -> int:
        SUPPORTED_VERSIONS = [1]
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"不支持的配置版本 {v}，支持的版本: {SUPPORTED_VERSIONS}")
        return v


class OtaStageConfig(BaseModel):
    """otastage 主配置模型"""

    config: ConfigModel = Field(default_factory=ConfigModel, description="配置元信息")
    package: PackageModel = Field(default_factory=PackageModel, description="更新包条目")
    decrypt: DecryptModel = Field(default_factory=DecryptModel, description="解密拷贝")
    engine: EngineModel = Field(default_factory=EngineModel, description="流式更新引擎")
    device: DeviceModel = Field(default_factory=DeviceModel, description="设备能力")
    recovery: RecoveryModel = Field(default_factory=RecoveryModel, description="整包安装")
    logging: LoggingModel = Field(default_factory=LoggingModel, description="日志")

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
        "str_strip_whitespace": True,
    }

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（可直接写入 YAML）"""
        data = self.model_dump(exclude_none=True)

        def convert_values(obj):
            if isinstance(obj, dict):
                return {k: convert_values(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_values(item) for item in obj]
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        return convert_values(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OtaStageConfig':
        """从字典创建配置实例"""
        return cls.model_validate(data)
