"""持久化偏好设置 - 每个包一个 "是否启用" 布尔值

键名形如 ``mod-<name>-enabled``，跨进程重启保留。
未设置过的包默认启用。
"""

from __future__ import annotations

import logging

from modhub.core.registry import YamlRegistry

logger = logging.getLogger(__name__)


def enabled_key(name: str) -> str:
    """包名 -> 偏好设置键名"""
    return f"mod-{name}-enabled"


class Preferences(YamlRegistry):
    """启用偏好存储"""

    section_key = "settings"

    def is_enabled(self, name: str) -> bool:
        value = self._get_raw(enabled_key(name), True)
        return bool(value)

    def set_enabled(self, name: str, enabled: bool) -> None:
        if self._get_raw(enabled_key(name)) is enabled:
            return
        self._put(enabled_key(name), enabled)
        logger.debug("偏好已更新: %s = %s", enabled_key(name), enabled)
