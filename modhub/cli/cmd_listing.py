"""CLI - 远程目录命令（浏览 / 检索 / 同步）"""

from __future__ import annotations

import click

from modhub.cli import Fail, Succeed, _kind, _svc, run_async
from modhub.core.exceptions import ModHubError
from modhub.core.models import CatalogEntry
from modhub.services.listing.search import FIELDS, SearchCriteria
from modhub.utils.text import strip_colors

ENTRIES_PER_PAGE = 3


def register(group: click.Group) -> None:
    group.add_command(list_entries)
    group.add_command(search)
    group.add_command(search_by)
    group.add_command(sync)


def fetch_listing(force_sync: bool = False) -> list[CatalogEntry]:
    """在应用线程上取当前种类的目录"""
    kind = _kind()
    listings = _svc().listings

    def start(ok: Succeed, err: Fail) -> None:
        listings.get(kind, ok, force_sync=force_sync, on_error=err)

    return run_async(start)


def echo_entry(entry: CatalogEntry) -> None:
    click.echo(f"名称: {strip_colors(entry.display_name)}")
    click.echo(f"仓库: {entry.repository}")
    click.echo(f"作者: {strip_colors(entry.author)}")
    click.echo(f"描述: {strip_colors(entry.description)}")
    click.echo(f"编译型: {'是' if entry.has_compiled_language else '否'}")
    if entry.min_host_version:
        click.echo(f"最低宿主版本: {entry.min_host_version}")
    click.echo(f"最后更新: {entry.last_updated.isoformat()}")
    click.echo(f"星标: {entry.star_count}")


def echo_entries(entries: list[CatalogEntry]) -> None:
    for i, entry in enumerate(entries):
        if i:
            click.echo("-" * 20)
        echo_entry(entry)


@click.command(name="list")
@click.argument("page", type=int, default=1)
def list_entries(page: int) -> None:
    """分页浏览目录（最新更新在前）"""
    entries = fetch_listing()
    pages = max(1, -(-len(entries) // ENTRIES_PER_PAGE))
    if not 1 <= page <= pages:
        raise click.ClickException(f"页码必须在 1 到 {pages} 之间")
    click.echo(f"-- {_kind().value} 目录 第 {page}/{pages} 页 --")
    start = (page - 1) * ENTRIES_PER_PAGE
    echo_entries(entries[start:start + ENTRIES_PER_PAGE])


@click.command()
@click.argument("query")
def search(query: str) -> None:
    """按名称检索目录"""
    _echo_matches(SearchCriteria("name", query))


@click.command(name="search-by")
@click.argument("field", type=click.Choice(FIELDS))
@click.argument("value")
def search_by(field: str, value: str) -> None:
    """按字段检索目录（stars 支持 > < >= <= = 前缀）"""
    try:
        criteria = SearchCriteria(field, value)
    except ModHubError as e:
        raise click.ClickException(str(e)) from e
    _echo_matches(criteria)


def _echo_matches(criteria: SearchCriteria) -> None:
    matches = criteria.filter(fetch_listing())
    if not matches:
        click.echo("没有匹配的条目。")
        return
    click.echo(f"找到 {len(matches)} 条:")
    echo_entries(matches)


@click.command()
def sync() -> None:
    """强制重新拉取目录"""
    entries = fetch_listing(force_sync=True)
    click.echo(f"已拉取 {len(entries)} 个{_kind().value}")
