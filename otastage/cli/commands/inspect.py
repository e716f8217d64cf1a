"""
Inspect 命令实现

显示更新包内 payload 的偏移、大小与属性，不做任何安装动作。
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from ...config import ConfigError, load_config
from ...package import HeaderPropertyReader, PayloadLocator
from ...utils import format_size


console = Console()


def inspect_command(
    package: str = typer.Argument(..., help="更新包路径"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="配置文件路径"),
    json_output: bool = typer.Option(False, "--json", help="输出 JSON 格式"),
) -> None:
    """检查更新包

    示例:
        otastage inspect update.zip
        otastage inspect update.zip --json
    """
    package_path = Path(package)

    if not package_path.is_file():
        console.print(f"[red]更新包不存在: {package_path}[/red]")
        raise typer.Exit(1)

    try:
        cfg = load_config(config)
    except ConfigError as e:
        console.print(f"[red]配置错误: {e}[/red]")
        raise typer.Exit(1)

    report = inspect_package(package_path, cfg.package.payload_entry, cfg.package.properties_entry)

    if json_output:
        console.print_json(json.dumps(report, ensure_ascii=False))
    else:
        _display_report(report)

    if report['payload']['offset'] < 0:
        raise typer.Exit(1)


def inspect_package(package_path: Path, payload_entry: str, properties_entry: str) -> Dict[str, Any]:
    """收集更新包信息"""
    location = PayloadLocator().locate(package_path, payload_entry)
    properties = HeaderPropertyReader().read_properties(package_path, properties_entry)

    return {
        'package': str(package_path),
        'package_size': package_path.stat().st_size,
        'payload': {
            'entry': payload_entry,
            'offset': location.offset,
            'length': location.length,
            'compressed': location.compressed,
            'error': str(location.error) if location.error else None,
            'error_kind': location.error.kind.value if location.error else None,
        },
        'properties': {
            'entry': properties_entry,
            'lines': properties,
        },
    }


def _display_report(report: Dict[str, Any]) -> None:
    """显示检查结果（人类可读格式）"""
    payload = report['payload']

    table = Table(title="更新包信息")
    table.add_column("属性", style="cyan")
    table.add_column("值", style="green")

    table.add_row("文件", report['package'])
    table.add_row("文件大小", format_size(report['package_size']))
    table.add_row("payload 条目", payload['entry'])
    if payload['error']:
        table.add_row("payload 偏移", f"[red]未解析 ({payload['error_kind']})[/red]")
        table.add_row("错误", payload['error'])
    else:
        table.add_row("payload 偏移", str(payload['offset']))
        table.add_row("payload 大小", f"{payload['length']} ({format_size(payload['length'])})")
        table.add_row("存储方式", "压缩" if payload['compressed'] else "STORED")

    console.print(table)
    console.print()

    lines = report['properties']['lines']
    props_table = Table(title=f"payload 属性 ({len(lines)} 行)")
    props_table.add_column("#", style="dim")
    props_table.add_column("内容", style="green")
    for index, line in enumerate(lines, 1):
        props_table.add_row(str(index), line)
    console.print(props_table)
