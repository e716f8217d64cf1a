"""
otastage 配置读写

YAML → 字典 → OtaStageConfig。文件层面的问题（缺失、格式、解析）抛出
ConfigError，字段校验失败抛出 ConfigValidationError 并附带 pydantic 的错误列表。
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .schema import OtaStageConfig

CONFIG_SUFFIXES = ('.yaml', '.yml')

ErrorList = List[Dict[str, Any]]


class ConfigError(Exception):
    """配置文件无法使用"""
    pass


class ConfigValidationError(ConfigError):
    """配置内容未通过 schema 校验"""

    def __init__(self, message: str, errors: ErrorList):
        super().__init__(message)
        self.errors = errors

    def format_errors(self) -> str:
        """每个错误一行：``<字段路径>: <原因>``"""
        return "\n".join(
            f"{describe_location(item.get('loc', ()))}: {item.get('msg', '未知错误')}"
            for item in self.errors
        )


def _to_plain(value: Any) -> Any:
    """CommentedMap/CommentedSeq 递归转为 dict/list，其余值（含日期）原样保留交给校验"""
    if isinstance(value, dict):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


def describe_location(loc) -> str:
    """pydantic 错误位置转成 ``decrypt.chunk_size`` 形式，空位置为 <root>"""
    return ".".join(str(part) for part in loc) or "<root>"


class ConfigLoader:
    """YAML 配置加载器"""

    def __init__(self):
        self.yaml = YAML(typ='rt')
        self.yaml.preserve_quotes = True
        self.yaml.default_flow_style = False

    def load_from_file(self, config_path: Union[str, Path]) -> OtaStageConfig:
        """读取并校验配置文件

        相对的 logging.file 以配置文件所在目录为基准。

        Raises:
            ConfigError: 文件不可用或 YAML 无法解析
            ConfigValidationError: 字段校验失败
        """
        path = Path(config_path)
        raw = self._read_yaml(path)
        return self.load_from_dict(raw, base_path=path.parent)

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            reason = "不是文件" if path.exists() else "不存在"
            raise ConfigError(f"配置文件{reason}: {path}")
        if path.suffix.lower() not in CONFIG_SUFFIXES:
            raise ConfigError(f"配置文件扩展名必须是 {'/'.join(CONFIG_SUFFIXES)}: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                document = self.yaml.load(f)
        except YAMLError as e:
            raise ConfigError(f"{path} 不是合法的 YAML: {e}")
        except OSError as e:
            raise ConfigError(f"无法读取 {path}: {e}")

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigError(f"{path} 顶层必须是映射，实际为 {type(document).__name__}")
        return document

    def load_from_dict(self, data: Dict[str, Any], base_path: Optional[Path] = None) -> OtaStageConfig:
        """校验字典形式的配置

        Raises:
            ConfigValidationError: 字段校验失败
        """
        # CommentedMap 转为普通 dict，同时避免修改调用方的数据
        data = _to_plain(data)
        if base_path is not None:
            self._anchor_log_file(data, base_path)

        try:
            return OtaStageConfig.from_dict(data)
        except ValidationError as e:
            raise ConfigValidationError(f"配置校验失败（{e.error_count()} 处）", list(e.errors()))

    def save_to_file(self, config: OtaStageConfig, output_path: Union[str, Path]) -> None:
        """写出 YAML 配置，父目录不存在时创建

        Raises:
            ConfigError: 写入失败
        """
        path = Path(output_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                self.yaml.dump(config.to_dict(), f)
        except (OSError, YAMLError) as e:
            raise ConfigError(f"无法写入配置 {path}: {e}")

    def validate_file(self, config_path: Union[str, Path]) -> ErrorList:
        """返回配置文件的全部问题，空列表表示可用"""
        try:
            self.load_from_file(config_path)
        except ConfigValidationError as e:
            return e.errors
        except ConfigError as e:
            return [{'loc': (), 'msg': str(e), 'type': 'config_error'}]
        return []

    @staticmethod
    def _anchor_log_file(data: Dict[str, Any], base_path: Path) -> None:
        section = data.get('logging')
        if not isinstance(section, dict):
            return
        log_file = section.get('file')
        if isinstance(log_file, str) and log_file and not Path(log_file).is_absolute():
            section['file'] = str((base_path / log_file).resolve())


config_loader = ConfigLoader()


def load_config(config_path: Optional[Union[str, Path]] = None) -> OtaStageConfig:
    """未指定文件时返回默认配置"""
    if config_path is None:
        return OtaStageConfig()
    return config_loader.load_from_file(config_path)


def validate_config(config_path: Union[str, Path]) -> ErrorList:
    return config_loader.validate_file(config_path)


def save_config(config: OtaStageConfig, output_path: Union[str, Path]) -> None:
    config_loader.save_to_file(config, output_path)
