"""
validate 命令

检查配置文件能否被 otastage 使用，通过时列出关键的生效设置。
"""

from pathlib import Path
from typing import Any, Dict, List

import typer
from rich.console import Console
from rich.table import Table

from ...config import describe_location, load_config, validate_config
from ...config.schema import OtaStageConfig


console = Console()


def validate_command(
    config: str = typer.Option(..., "--config", "-c", help="要检查的配置文件"),
    json_output: bool = typer.Option(False, "--json", help="以 JSON 输出检查结果"),
) -> None:
    """检查配置文件

    示例:
        otastage validate -c otastage.yaml
    """
    config_path = Path(config)
    problems = validate_config(config_path)

    if json_output:
        console.print_json(data={
            "file": str(config_path),
            "valid": not problems,
            "problems": [
                {"field": describe_location(p.get('loc', ())), "message": p.get('msg', ''), "type": p.get('type', '')}
                for p in problems
            ],
        })
    elif problems:
        _print_problems(config_path, problems)
    else:
        _print_summary(config_path, load_config(config_path))

    if problems:
        raise typer.Exit(1)


def _print_problems(config_path: Path, problems: List[Dict[str, Any]]) -> None:
    table = Table(title=f"{config_path}: {len(problems)} 个问题")
    table.add_column("字段", style="cyan", no_wrap=True)
    table.add_column("原因", style="red")
    for problem in problems:
        table.add_row(describe_location(problem.get('loc', ())), problem.get('msg', '未知错误'))
    console.print(table)


def _print_summary(config_path: Path, cfg: OtaStageConfig) -> None:
    table = Table(title=f"[green]✓[/green] {config_path}")
    table.add_column("设置", style="cyan")
    table.add_column("生效值", style="green")
    table.add_row("payload 条目", cfg.package.payload_entry)
    table.add_row("属性条目", cfg.package.properties_entry)
    table.add_row("A/B 探测", cfg.device.ab_update.value)
    table.add_row("加密根目录", ", ".join(cfg.device.encrypted_roots) or "-")
    table.add_row("解密产物后缀", cfg.decrypt.suffix)
    table.add_row("源文件权限", oct(cfg.decrypt.source_mode))
    table.add_row("recovery 命令文件", cfg.recovery.command_file)
    table.add_row("性能模式", "开启" if cfg.engine.performance_mode else "关闭")
    console.print(table)
