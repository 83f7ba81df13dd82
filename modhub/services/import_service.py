"""导入管线 - 从源码托管 API 把一个仓库变成已安装包

流程:
  1. 分支选择: 目录提示为编译型 → 步骤 3；否则 GET /repos/{repo}，
     按主语言判断走编译产物（步骤 3）或源码快照（步骤 2）
  2. 源码快照: GET /repos/{repo}/zipball/{branch}，带 Location 头时再 GET 一次
  3. 编译产物: GET /repos/{repo}/releases/latest，取首个扩展名匹配的 asset 下载
  4. 安装: 写入临时文件 → PackageRegistry.install → 无论成败都删除临时文件

每条导入链是一个 _ImportChain 状态对象，所有失败都经 report_error 分类，
链的终点无论成败都会调用一次 on_done。不做自动重试。
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol
from urllib.parse import quote

from modhub.core.config import GITHUB_API
from modhub.core.dep.models import InstalledPackage
from modhub.core.dep.registry import PackageRegistry
from modhub.core.exceptions import (
    ConfigError,
    NetworkError,
    ParseError,
    ValidationError,
    report_error,
)
from modhub.core.models import CatalogEntry
from modhub.utils.net import HttpResponse, HttpTransport

logger = logging.getLogger(__name__)

_REPO_RE = re.compile(r"^[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+$")


class CompiledLanguagePolicy(Protocol):
    """主语言 -> 是否按编译型包处理"""

    def is_compiled(self, language: str | None) -> bool:
        ...


class LanguageSetPolicy:
    """主语言落在固定集合内即视为编译型（粗略启发式）"""

    def __init__(self, languages: Iterable[str]) -> None:
        self.languages = frozenset(languages)

    def is_compiled(self, language: str | None) -> bool:
        return language in self.languages


@dataclass
class ImportResult:
    """一次导入的终态"""

    repository: str
    package: InstalledPackage | None = None
    error: BaseException | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None and self.package is not None


ImportCallback = Callable[[ImportResult], None]
StatusCallback = Callable[[int], None]


class PackageFetcher:
    """导入管线入口"""

    def __init__(
        self,
        http: HttpTransport,
        registry: PackageRegistry,
        tmp_dir: str | Path,
        *,
        github_api: str = GITHUB_API,
        language_policy: CompiledLanguagePolicy | None = None,
        compiled_extension: str = ".jar",
    ) -> None:
        self.http = http
        self.registry = registry
        self.tmp_dir = Path(tmp_dir)
        self.github_api = github_api.rstrip("/")
        self.language_policy: CompiledLanguagePolicy = (
            language_policy or LanguageSetPolicy(("Java", "Kotlin", "Groovy"))
        )
        self.compiled_extension = compiled_extension

    def import_entry(
        self,
        entry: CatalogEntry,
        on_done: ImportCallback,
        *,
        on_status: StatusCallback | None = None,
    ) -> None:
        """导入目录条目（使用目录里的 hasJava 提示）"""
        self.import_repo(
            entry.repository, entry.has_compiled_language, on_done, on_status=on_status,
        )

    def import_repo(
        self,
        repository: str,
        compiled_hint: bool,
        on_done: ImportCallback,
        *,
        on_status: StatusCallback | None = None,
    ) -> None:
        """导入 owner/repo

        Args:
            compiled_hint: 为 True 时跳过语言探测，直接取最新发布的编译产物
            on_done: 链结束后（临时文件清理之后）调用一次
            on_status: 源码快照返回非成功状态时的回调，缺省时按网络错误报告
        """
        logger.info(
            "开始导入: %s (compiled_hint=%s)", repository, compiled_hint,
            extra={"repository": repository},
        )
        _ImportChain(self, repository, on_done, on_status).start(compiled_hint)

    def scratch_file(self, repository: str) -> Path:
        """本次导入独占的临时归档路径；每次调用新建一个私有目录"""
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        scratch_dir = Path(tempfile.mkdtemp(prefix="import-", dir=self.tmp_dir))
        return scratch_dir / f"{repository.replace('/', '-')}.zip"


class _ImportChain:
    """单条导入链的状态机；每一步的续延只在上一步完成后运行"""

    def __init__(
        self,
        fetcher: PackageFetcher,
        repository: str,
        on_done: ImportCallback,
        on_status: StatusCallback | None,
    ) -> None:
        self.fetcher = fetcher
        self.repository = repository
        self.on_done = on_done
        self.on_status = on_status
        self._finished = False
        self._api = f"{fetcher.github_api}/repos/{repository}"

    # ---- 步骤 1: 分支选择 ----

    def start(self, compiled_hint: bool) -> None:
        if not _REPO_RE.match(self.repository):
            self._fail(ValidationError(f"仓库标识无效，应为 owner/repo: {self.repository!r}"))
            return
        if compiled_hint:
            self._fetch_release()
        else:
            self._get(self._api, self._on_repo)

    def _on_repo(self, response: HttpResponse) -> None:
        data = self._json_object(self._check(response))
        language = data.get("language") or "<none>"
        if self.fetcher.language_policy.is_compiled(language):
            logger.debug("%s 主语言为 %s，按编译型包导入", self.repository, language)
            self._fetch_release()
            return
        branch = data.get("default_branch")
        if not isinstance(branch, str) or not branch:
            raise ParseError(f"仓库信息缺少 default_branch: {self.repository}")
        self._fetch_branch(branch)

    # ---- 步骤 2: 源码快照 ----

    def _fetch_branch(self, branch: str) -> None:
        logger.debug("下载源码快照: %s@%s", self.repository, branch)
        self._get(
            f"{self._api}/zipball/{quote(branch, safe='')}",
            self._on_zipball,
            follow_redirects=False,
        )

    def _on_zipball(self, response: HttpResponse) -> None:
        if not (response.ok or 300 <= response.status < 400):
            self._status_error(response)
            return
        location = response.header("Location")
        if location:
            self._get(location, self._on_redirected_archive)
        elif response.ok:
            self._install(response.body)
        else:
            self._status_error(response)

    def _on_redirected_archive(self, response: HttpResponse) -> None:
        if not response.ok:
            self._status_error(response)
            return
        self._install(response.body)

    def _status_error(self, response: HttpResponse) -> None:
        error = NetworkError(response.status, response.url)
        if self.on_status is None:
            self._fail(error)
            return
        self.on_status(response.status)
        self._finish(error=error, message=str(error))

    # ---- 步骤 3: 编译产物 ----

    def _fetch_release(self) -> None:
        self._get(f"{self._api}/releases/latest", self._on_release)

    def _on_release(self, response: HttpResponse) -> None:
        data = self._json_object(self._check(response))
        extension = self.fetcher.compiled_extension
        assets = data.get("assets") or []
        asset = next(
            (a for a in assets
             if isinstance(a, dict) and str(a.get("name", "")).endswith(extension)),
            None,
        )
        if asset is None:
            raise ConfigError(
                f"最新发布中没有可安装的产物 (*{extension})，"
                f"请确认 {self.repository} 的最新 Release 附带了该文件"
            )
        url = asset.get("browser_download_url")
        if not isinstance(url, str) or not url:
            raise ParseError(f"发布产物缺少下载地址: {asset.get('name')}")
        logger.debug("下载发布产物: %s", url)
        self._get(url, self._on_asset)

    def _on_asset(self, response: HttpResponse) -> None:
        self._install(self._check(response).body)

    # ---- 步骤 4: 安装 ----

    def _install(self, body: bytes) -> None:
        scratch: Path | None = None
        package: InstalledPackage | None = None
        error: Exception | None = None
        try:
            scratch = self.fetcher.scratch_file(self.repository)
            scratch.write_bytes(body)
            package = self.fetcher.registry.install(scratch, repo=self.repository)
        except Exception as e:
            error = e
        finally:
            if scratch is not None:
                try:
                    shutil.rmtree(scratch.parent)
                except OSError as e:
                    logger.warning("删除临时文件失败: %s - %s", scratch, e)

        if error is not None:
            self._fail(error)
            return
        if package is not None:
            self._finish(package=package, message=f"已导入 {package.name}，重启后生效")

    # ---- 公共 ----

    def _get(
        self,
        url: str,
        step: Callable[[HttpResponse], None],
        *,
        follow_redirects: bool = True,
    ) -> None:
        def on_response(response: HttpResponse) -> None:
            try:
                step(response)
            except Exception as e:
                self._fail(e)

        try:
            self.fetcher.http.get_async(
                url, on_response, self._fail, follow_redirects=follow_redirects,
            )
        except Exception as e:
            self._fail(e)

    @staticmethod
    def _check(response: HttpResponse) -> HttpResponse:
        if not response.ok:
            raise NetworkError(response.status, response.url)
        return response

    def _json_object(self, response: HttpResponse) -> dict[str, Any]:
        try:
            data = response.json()
        except (ValueError, UnicodeDecodeError) as e:
            raise ParseError(f"API 响应不是合法 JSON: {response.url} - {e}") from e
        if not isinstance(data, dict):
            raise ParseError(f"API 响应不是 JSON 对象: {response.url}")
        return data

    def _fail(self, exc: BaseException) -> None:
        if self._finished:
            logger.error(
                "导入链结束后仍有异常（多为 on_done 回调出错）: %s", exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
            return
        message = report_error(exc, logger)
        self._finish(error=exc, message=message)

    def _finish(
        self,
        *,
        package: InstalledPackage | None = None,
        error: BaseException | None = None,
        message: str = "",
    ) -> None:
        if self._finished:
            return
        self._finished = True
        if error is None:
            logger.info(
                "导入完成: %s -> %s", self.repository, package.name if package else "-",
                extra={"repository": self.repository},
            )
        self.on_done(ImportResult(self.repository, package, error, message))
