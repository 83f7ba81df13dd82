"""YAML 注册表基类

基于单个 YAML 文件、按 section 分区存储的键值注册表。
子类只需指定 section_key 即可获得加载、保存与增删查。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from modhub.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class YamlRegistry:
    """YAML 文件注册表基类

    子类用法:
        class MyRegistry(YamlRegistry):
            section_key = "items"
    """

    section_key: str = "entries"

    def __init__(self, registry_file: str | Path) -> None:
        self.registry_file = Path(registry_file)
        self._data: dict[str, Any] = load_yaml(self.registry_file)

    def _section(self) -> dict[str, Any]:
        """获取当前 section 字典（自动创建）"""
        section = self._data.get(self.section_key)
        if not isinstance(section, dict):
            section = {}
            self._data[self.section_key] = section
        return section

    def _save(self) -> None:
        save_yaml(self.registry_file, self._data)

    def _put(self, key: str, value: Any) -> None:
        self._section()[key] = value
        self._save()

    def _get_raw(self, key: str, default: Any = None) -> Any:
        return self._section().get(key, default)

