"""modhub 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
注册表与目录缓存只在应用线程上修改，命令通过 run_async / on_app
把操作投递过去并等待结果（上限为 command_timeout 秒）。
"""

from __future__ import annotations

import threading
from typing import Any, Callable

import click

from modhub import __version__
from modhub.core.config import DEFAULT_CONFIG_FILE, Config
from modhub.core.exceptions import (
    PLATFORM_UNSUPPORTED_MESSAGE,
    ModHubError,
    is_platform_capability_error,
)
from modhub.core.models import ListingKind
from modhub.services.container import ServiceContainer
from modhub.utils.logger import setup_logging_from_env

Succeed = Callable[[Any], None]
Fail = Callable[[BaseException], None]


def _state() -> dict[str, Any]:
    return click.get_current_context().find_root().obj


def _svc() -> ServiceContainer:
    """当前命令的服务容器"""
    return _state()["container"]


def _kind() -> ListingKind:
    return ListingKind(_state()["kind"])


def _fail(exc: BaseException) -> click.ClickException:
    """异常 -> 面向用户的 ClickException"""
    if is_platform_capability_error(exc):
        return click.ClickException(PLATFORM_UNSUPPORTED_MESSAGE)
    return click.ClickException(str(exc) or type(exc).__name__)


def on_app(fn: Callable[..., Any], *args: Any) -> Any:
    """在应用线程上同步执行 fn(*args) 并返回结果"""
    svc = _svc()
    try:
        if svc.app is None:
            return fn(*args)
        return svc.app.submit(fn, *args).result(timeout=svc.config.command_timeout)
    except ModHubError as e:
        raise _fail(e) from e


def run_async(start: Callable[[Succeed, Fail], None]) -> Any:
    """在应用线程上启动一条回调链，阻塞等待 ok / err 任一被调用"""
    svc = _svc()
    done = threading.Event()
    box: dict[str, Any] = {}

    def ok(value: Any) -> None:
        box["value"] = value
        done.set()

    def err(exc: BaseException) -> None:
        box["error"] = exc
        done.set()

    def begin() -> None:
        try:
            start(ok, err)
        except Exception as e:
            err(e)

    svc.dispatcher.post(begin)
    if not done.wait(timeout=svc.config.command_timeout):
        raise click.ClickException(f"操作超时（{svc.config.command_timeout} 秒）")
    if "error" in box:
        raise _fail(box["error"])
    return box.get("value")


def packages() -> Any:
    """已加载的包注册表（首次访问时扫描托管目录）"""
    state = _state()
    registry = _svc().packages
    if not state.get("loaded"):
        on_app(registry.load)
        state["loaded"] = True
    return registry


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=DEFAULT_CONFIG_FILE, help="配置文件路径")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in ListingKind]),
    default=ListingKind.PLUGIN.value,
    help="目录种类",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, kind: str) -> None:
    """modhub - 插件 / 模组包管理器"""
    setup_logging_from_env()
    ctx.ensure_object(dict)
    ctx.obj["kind"] = kind
    if "container" not in ctx.obj:
        try:
            container = ServiceContainer(Config.from_file(config_path))
        except ModHubError as e:
            raise _fail(e) from e
        ctx.obj["container"] = container
        ctx.call_on_close(container.close)


# 注册各领域子命令
from modhub.cli.cmd_listing import register as _reg_listing  # noqa: E402
from modhub.cli.cmd_packages import register as _reg_packages  # noqa: E402

_reg_listing(main)
_reg_packages(main)
