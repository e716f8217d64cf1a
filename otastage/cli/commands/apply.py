"""
Apply 命令实现

对更新包执行一次完整的更新尝试。
"""

from typing import Optional

import typer
from rich.console import Console

from ...config import ConfigError, load_config
from ...install import DecryptState, UpdateSession
from ...package import UpdatePackage
from ...platform import build_platform
from ...utils import configure_logging, expand_path


console = Console()


def apply_command(
    package: str = typer.Argument(..., help="更新包路径"),
    size: Optional[int] = typer.Option(None, "--size", "-s", min=0, help="payload 声明大小（字节）"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="配置文件路径"),
    ab: Optional[bool] = typer.Option(None, "--ab/--a-only", help="覆盖设备 A/B 探测结果"),
    encrypted: Optional[bool] = typer.Option(None, "--encrypted/--plain", help="覆盖加密探测结果"),
) -> None:
    """应用更新包

    A/B 设备交给 update_engine 流式应用；单槽设备写入 recovery 命令，
    加密包先在本地解密拷贝。Ctrl+C 会取消尚未开始安装的解密任务。

    示例:
        otastage apply update.zip --size 123456
        otastage apply /data/ota/update.zip --a-only -c otastage.yaml
    """
    try:
        cfg = load_config(config)
    except ConfigError as e:
        console.print(f"[red]配置错误: {e}[/red]")
        raise typer.Exit(1)

    if config:
        configure_logging(level=cfg.logging.level.value, log_file=cfg.logging.file)

    platform = build_platform(cfg, two_slots=ab, encrypted=encrypted)

    with UpdateSession(platform, cfg) as session:
        session.status.subscribe(lambda s: console.print(f"[bold]» {s}[/bold]"))
        result = session.prepare_update(UpdatePackage.from_path(expand_path(package), size))

        if result.error is not None:
            raise typer.Exit(1)

        if result.task is None:
            return

        try:
            outcome = result.task.wait()
        except KeyboardInterrupt:
            if session.close():
                console.print("[yellow]已请求取消，等待拷贝结束后清理...[/yellow]")
            outcome = result.task.wait()

    if outcome is None or outcome.state != DecryptState.INSTALLED:
        raise typer.Exit(1)
