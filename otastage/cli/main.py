"""
otastage 命令行入口

    otastage inspect update.zip        查看 payload 偏移与属性
    otastage apply update.zip -s N     执行一次更新尝试
    otastage validate -c cfg.yaml      检查配置
    otastage example                   写出默认配置
    otastage info                      内置常量
"""

import platform
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..utils import configure_logging
from .commands import apply, inspect, validate


app = typer.Typer(
    name="otastage",
    help="定位 OTA 包中的 payload 并编排安装",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()


def _print_version(value: bool) -> None:
    if not value:
        return
    console.print(f"otastage {__version__}")
    raise typer.Exit()


def _apply_verbosity(verbose: bool) -> None:
    configure_logging(level="DEBUG" if verbose else "INFO")


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", is_eager=True, callback=_print_version, help="打印版本后退出",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", callback=_apply_verbosity, help="输出 DEBUG 级别日志",
    ),
) -> None:
    """定位 OTA 包中的 payload 并编排安装"""


app.command("inspect", help="查看更新包的 payload 偏移与属性")(inspect.inspect_command)
app.command("apply", help="对更新包执行一次更新尝试")(apply.apply_command)
app.command("validate", help="检查配置文件")(validate.validate_command)


@app.command("info")
def info_command() -> None:
    """列出内置常量与运行环境"""
    from ..config.schema import (
        DEFAULT_DECRYPT_SUFFIX,
        DEFAULT_PAYLOAD_ENTRY,
        DEFAULT_PROPERTIES_ENTRY,
        DEFAULT_SOURCE_MODE,
    )
    from ..install.status import INSTALLED, PREPARING
    from ..package import LOCAL_HEADER_SIZE

    rows = [
        ("otastage", __version__),
        ("Python", platform.python_version()),
        ("payload 条目", DEFAULT_PAYLOAD_ENTRY),
        ("属性条目", DEFAULT_PROPERTIES_ENTRY),
        ("本地文件头", f"{LOCAL_HEADER_SIZE} 字节"),
        ("解密产物", f"<包路径>{DEFAULT_DECRYPT_SUFFIX}"),
        ("源文件权限", oct(DEFAULT_SOURCE_MODE)),
        ("状态示例", f"{PREPARING} / {INSTALLED}"),
    ]

    table = Table(title="otastage", show_header=False)
    table.add_column(style="cyan")
    table.add_column(style="green")
    for name, value in rows:
        table.add_row(name, value)
    console.print(table)


@app.command("example")
def example_command(
    output: str = typer.Option("otastage.yaml", "--output", "-o", help="写出的配置文件"),
) -> None:
    """写出一份全部为默认值的配置"""
    from ..config import ConfigError, OtaStageConfig, save_config

    try:
        save_config(OtaStageConfig(), output)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"已写出默认配置 [green]{output}[/green]，修改后可用于:")
    console.print(f"  otastage apply <update.zip> -c {output}")


if __name__ == "__main__":
    app()
