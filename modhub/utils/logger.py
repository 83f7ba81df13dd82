"""modhub 日志配置

modhub 记录三类事件: 目录拉取与解析、导入链各步骤、已安装包的增删与启停。
日志写到 stderr，可选普通文本或 JSON 行。

JSON 行会带上调用方通过 extra= 附加的上下文字段:
    kind         目录种类 (plugin / mod)
    repository   导入链对应的 owner/repo
    package      已安装包名

环境变量:
    MODHUB_LOG_LEVEL   日志级别，缺省 INFO
    MODHUB_LOG_JSON    为 1 时输出 JSON 行
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import datetime, timezone

CONTEXT_FIELDS = ("kind", "repository", "package")


class JSONFormatter(logging.Formatter):
    """每条记录一行 JSON"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            # 记录事件发生时间而非格式化时间
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，重复调用时先移除已有 handlers"""
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        fmt = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"
        handler.setFormatter(logging.Formatter(fmt))

    root.addHandler(handler)


def setup_logging_from_env(environ: Mapping[str, str] | None = None) -> None:
    """按 MODHUB_LOG_LEVEL / MODHUB_LOG_JSON 配置日志（CLI 入口调用）"""
    env = os.environ if environ is None else environ
    setup_logging(
        level=env.get("MODHUB_LOG_LEVEL", "INFO"),
        json_output=env.get("MODHUB_LOG_JSON", "") == "1",
    )


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
