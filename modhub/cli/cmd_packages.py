"""CLI - 已安装包命令（导入 / 移除 / 启停 / 查看）"""

from __future__ import annotations

from pathlib import Path

import click

from modhub.cli import Fail, Succeed, _kind, _svc, on_app, packages, run_async
from modhub.core.dep.models import InstalledPackage, PackageState
from modhub.core.exceptions import NotFoundError
from modhub.services.import_service import ImportResult
from modhub.services.listing.search import find_listing

STATE_LABELS = {
    PackageState.UNSUPPORTED: "不支持",
    PackageState.MISSING_DEPENDENCIES: "缺少依赖",
    PackageState.DISABLED: "已禁用",
    PackageState.ENABLED: "已启用",
}


def register(group: click.Group) -> None:
    group.add_command(add)
    group.add_command(import_file)
    group.add_command(remove)
    group.add_command(installed)
    group.add_command(order)
    group.add_command(enable)
    group.add_command(disable)


def _describe(pkg: InstalledPackage) -> str:
    line = f"  {pkg.name:24s} {pkg.meta.version or '-':10s} [{STATE_LABELS[pkg.state]}]"
    if pkg.missing_dependencies:
        line += f" 缺少: {', '.join(pkg.missing_dependencies)}"
    if pkg.repo:
        line += f" <{pkg.repo}>"
    return line


@click.command()
@click.argument("name")
def add(name: str) -> None:
    """从目录导入包（按显示名或 owner/repo）"""
    svc = _svc()
    kind = _kind()
    packages()

    def start(ok: Succeed, err: Fail) -> None:
        def on_listing(entries: list) -> None:
            try:
                entry = find_listing(entries, name)
            except NotFoundError as e:
                err(e)
                return
            svc.fetcher.import_entry(entry, ok)

        svc.listings.get(kind, on_listing, on_error=err)

    result: ImportResult = run_async(start)
    if not result.ok:
        raise click.ClickException(result.message or f"导入失败: {name}")
    click.echo(result.message)


@click.command(name="import-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_file(path: Path) -> None:
    """从本地归档安装包"""
    pkg = on_app(packages().install, path)
    click.echo(f"已导入 {pkg.name}，重启后生效")


@click.command()
@click.argument("name")
def remove(name: str) -> None:
    """移除已安装包（删除其文件）"""
    registry = packages()
    pkg = on_app(registry.find, name)
    if not on_app(registry.remove, pkg):
        raise click.ClickException(f"无法删除 '{pkg.name}'，请检查文件权限")
    click.echo(f"已移除 {pkg.name}，重启后生效")


@click.command()
def installed() -> None:
    """列出已安装包及其状态"""
    items = packages().list()
    if not items:
        click.echo("没有已安装的包。")
        return
    for pkg in items:
        click.echo(_describe(pkg))


@click.command()
def order() -> None:
    """按依赖顺序列出启用包"""
    items = on_app(packages().ordered)
    if not items:
        click.echo("没有启用的包。")
        return
    for i, pkg in enumerate(items, start=1):
        click.echo(f"  {i:3d}. {pkg.name}")


def _toggle(name: str, enabled: bool) -> None:
    registry = packages()
    pkg = on_app(registry.find, name)
    on_app(registry.set_enabled, pkg, enabled)
    click.echo(_describe(pkg))
    if registry.requires_reload:
        click.echo("重启后生效")


@click.command()
@click.argument("name")
def enable(name: str) -> None:
    """启用包"""
    _toggle(name, True)


@click.command()
@click.argument("name")
def disable(name: str) -> None:
    """禁用包"""
    _toggle(name, False)
