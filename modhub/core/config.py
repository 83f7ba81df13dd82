"""集中配置管理

支持从 YAML 文件加载 + 编程式覆盖。组件本身不读取全局配置，
由 ServiceContainer 把需要的字段显式传入。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from modhub.core.exceptions import ConfigError
from modhub.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configs/modhub.yml"

PLUGIN_LIST_URL = (
    "https://raw.githubusercontent.com/MindustryInside/MindustryPlugins/main/plugins.json"
)
MOD_LIST_URL = (
    "https://raw.githubusercontent.com/Anuken/MindustryMods/master/mods.json"
)
GITHUB_API = "https://api.github.com"


@dataclass
class Config:
    """全局配置"""

    # 目录
    mods_dir: str = "data/mods"
    tmp_dir: str = "data/tmp"
    settings_file: str = "data/settings.yml"
    workshop_dirs: list[str] = field(default_factory=list)

    # 远程目录与源码托管 API
    plugin_list_url: str = PLUGIN_LIST_URL
    mod_list_url: str = MOD_LIST_URL
    github_api: str = GITHUB_API
    listing_ttl: int = 3600  # 秒

    # 编译型包
    compiled_languages: list[str] = field(
        default_factory=lambda: ["Java", "Kotlin", "Groovy"],
    )
    compiled_extension: str = ".jar"

    # 宿主
    host_version: str = "146"
    allow_entry_points: bool = True
    skip_entry_points: bool = False

    # 网络 / 执行
    http_timeout: float = 0  # 0 表示不设超时
    io_workers: int = 4
    command_timeout: int = 300

    # 放不到字段里的配置项
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.listing_ttl < 0:
            raise ConfigError(f"listing_ttl 不能为负数: {self.listing_ttl}")
        if not self.compiled_extension.startswith("."):
            self.compiled_extension = "." + self.compiled_extension

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件字段无效: {path} - {e}") from e
        cfg.extra = extra
        logger.info("配置已加载: %s", path)
        return cfg

    @property
    def timeout(self) -> float | None:
        return self.http_timeout or None

