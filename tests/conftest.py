"""测试共享 fixture - 假 HTTP 传输 + 包归档构造 + 同步容器

  FakeTransport        按 URL 路由到预设响应或异常，记录调用顺序
  make_archive         在 tmp_path/src 下生成带清单的 zip 包
  registry             指向 tmp_path/mods 的 PackageRegistry
  container            ImmediateDispatcher + FakeTransport 的 ServiceContainer

所有续延都在调用线程内同步执行，测试无需等待。
"""

from __future__ import annotations

import json
import zipfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

import pytest

from modhub.core.config import Config
from modhub.core.dep.registry import PackageRegistry
from modhub.core.preferences import Preferences
from modhub.services.container import ServiceContainer
from modhub.utils.net import FailureCallback, HttpResponse, ResponseCallback
from modhub.utils.tasks import ImmediateDispatcher

PLUGIN_LIST_URL = "https://registry.test/plugins.json"
MOD_LIST_URL = "https://registry.test/mods.json"
GITHUB_API = "https://api.test"


# =========================================================================
# HTTP
# =========================================================================


class FakeTransport:
    """HttpTransport 的同步假实现；未登记的 URL 返回 404"""

    def __init__(self) -> None:
        self.routes: dict[str, HttpResponse | BaseException] = {}
        self.calls: list[tuple[str, bool]] = []

    def route(
        self,
        url: str,
        body: bytes | str = b"",
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = HttpResponse(status=status, body=body, headers=headers or {}, url=url)

    def route_json(self, url: str, data: Any, *, status: int = 200) -> None:
        self.route(url, json.dumps(data), status=status)

    def fail(self, url: str, exc: BaseException) -> None:
        self.routes[url] = exc

    @property
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]

    def get_async(
        self,
        url: str,
        on_response: ResponseCallback,
        on_failure: FailureCallback,
        *,
        follow_redirects: bool = True,
    ) -> None:
        self.calls.append((url, follow_redirects))
        target = self.routes.get(url)
        if target is None:
            on_response(HttpResponse(status=404, url=url))
        elif isinstance(target, BaseException):
            on_failure(target)
        else:
            on_response(replace(target))


@pytest.fixture
def http() -> FakeTransport:
    return FakeTransport()


# =========================================================================
# 包归档
# =========================================================================


@pytest.fixture
def make_archive(tmp_path: Path) -> Callable[..., Path]:
    """make_archive(filename, manifest_dict_or_text, files={...}, manifest_name=..., prefix=...)"""
    src = tmp_path / "src"
    src.mkdir(exist_ok=True)

    def _make(
        filename: str,
        content: dict[str, Any] | str | None,
        *,
        files: dict[str, str] | None = None,
        manifest_name: str = "mod.json",
        prefix: str = "",
    ) -> Path:
        path = src / filename
        with zipfile.ZipFile(path, "w") as zf:
            if content is not None:
                text = content if isinstance(content, str) else json.dumps(content)
                zf.writestr(prefix + manifest_name, text)
            for rel, body in (files or {}).items():
                zf.writestr(prefix + rel, body)
        return path

    return _make


@pytest.fixture
def preferences(tmp_path: Path) -> Preferences:
    return Preferences(tmp_path / "settings.yml")


@pytest.fixture
def registry(tmp_path: Path, preferences: Preferences) -> PackageRegistry:
    return PackageRegistry(tmp_path / "mods", preferences, host_version="146")


# =========================================================================
# 容器
# =========================================================================


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        mods_dir=str(tmp_path / "mods"),
        tmp_dir=str(tmp_path / "tmp"),
        settings_file=str(tmp_path / "settings.yml"),
        plugin_list_url=PLUGIN_LIST_URL,
        mod_list_url=MOD_LIST_URL,
        github_api=GITHUB_API,
        io_workers=0,
        command_timeout=5,
    )


@pytest.fixture
def container(config: Config, http: FakeTransport) -> ServiceContainer:
    c = ServiceContainer(config, dispatcher=ImmediateDispatcher(), http=http)
    yield c
    c.close()
