"""服务容器 - 显式构造、显式持有全部进程级状态

注册表与目录缓存不是全局单例：由容器在进程启动时创建、退出时 close()，
再注入到需要它们的组件。同一容器内的实例共享状态。

依赖关系图（→ 表示依赖）:
  listings → http
  packages → preferences
  fetcher  → http, packages

用法:
    container = ServiceContainer(Config.from_file("configs/modhub.yml"))
    container.packages.load()
    container.listings.get(ListingKind.PLUGIN, print)
    ...
    container.close()

测试时传入 dispatcher=ImmediateDispatcher() 与假 http，
所有续延都在调用线程内同步执行。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from modhub.utils.tasks import AppThread, Dispatcher

if TYPE_CHECKING:
    from modhub.core.config import Config
    from modhub.core.dep.registry import PackageRegistry
    from modhub.core.preferences import Preferences
    from modhub.services.import_service import PackageFetcher
    from modhub.services.listing.cache import ListingCache
    from modhub.utils.net import HttpTransport

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(
        self,
        config: Config,
        *,
        dispatcher: Dispatcher | None = None,
        http: HttpTransport | None = None,
    ) -> None:
        self._config = config
        self._instances: dict[str, object] = {}
        self._app: AppThread | None = None
        if dispatcher is None:
            self._app = AppThread()
            dispatcher = self._app
        self._dispatcher = dispatcher
        if http is not None:
            self._instances["http"] = http

    @property
    def config(self) -> Config:
        return self._config

    @property
    def dispatcher(self) -> Dispatcher:
        """应用线程；注册表与缓存只能在这里修改"""
        return self._dispatcher

    @property
    def app(self) -> AppThread | None:
        """容器自建的应用线程（注入 dispatcher 时为 None）"""
        return self._app

    @property
    def http(self) -> HttpTransport:
        if "http" not in self._instances:
            from modhub.utils.net import HttpClient
            self._instances["http"] = HttpClient(
                self._dispatcher,
                io_workers=self._config.io_workers,
                timeout=self._config.timeout,
            )
        return self._instances["http"]  # type: ignore[return-value]

    @property
    def preferences(self) -> Preferences:
        if "preferences" not in self._instances:
            from modhub.core.preferences import Preferences
            self._instances["preferences"] = Preferences(self._config.settings_file)
        return self._instances["preferences"]  # type: ignore[return-value]

    @property
    def packages(self) -> PackageRegistry:
        if "packages" not in self._instances:
            from modhub.core.dep.registry import PackageRegistry
            cfg = self._config
            self._instances["packages"] = PackageRegistry(
                cfg.mods_dir,
                self.preferences,
                workshop_dirs=cfg.workshop_dirs,
                host_version=cfg.host_version,
                compiled_extension=cfg.compiled_extension,
                allow_entry_points=cfg.allow_entry_points,
                skip_entry_points=cfg.skip_entry_points,
            )
        return self._instances["packages"]  # type: ignore[return-value]

    @property
    def listings(self) -> ListingCache:
        if "listings" not in self._instances:
            from modhub.core.models import ListingKind
            from modhub.services.listing.cache import ListingCache
            from modhub.services.listing.client import RegistryClient
            self._instances["listings"] = ListingCache(
                RegistryClient(self.http),
                {
                    ListingKind.PLUGIN: self._config.plugin_list_url,
                    ListingKind.MOD: self._config.mod_list_url,
                },
                ttl=self._config.listing_ttl,
            )
        return self._instances["listings"]  # type: ignore[return-value]

    @property
    def fetcher(self) -> PackageFetcher:
        if "fetcher" not in self._instances:
            from modhub.services.import_service import LanguageSetPolicy, PackageFetcher
            cfg = self._config
            self._instances["fetcher"] = PackageFetcher(
                self.http,
                self.packages,
                cfg.tmp_dir,
                github_api=cfg.github_api,
                language_policy=LanguageSetPolicy(cfg.compiled_languages),
                compiled_extension=cfg.compiled_extension,
            )
        return self._instances["fetcher"]  # type: ignore[return-value]

    def close(self) -> None:
        """释放线程池与归档句柄"""
        packages = self._instances.get("packages")
        if packages is not None:
            for pkg in packages.list():  # type: ignore[attr-defined]
                pkg.dispose()
        http = self._instances.get("http")
        close = getattr(http, "close", None)
        if callable(close):
            close()
        if self._app is not None:
            self._app.shutdown(wait=True)
        self._instances.clear()
        logger.debug("服务容器已关闭")
