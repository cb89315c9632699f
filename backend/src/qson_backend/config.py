"""
服务端 QSON 配置加载。

约定：
- 优先读取环境变量 QSON_OPTIONS_FILE 指向的 YAML；未设置时读取仓库内 docs/data/qson_options.yaml。
- 配置文件不合法必须启动失败，不回退到默认值（正确地失败）。
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from qson import QsonOptions

from .utils.paths import default_options_path


logger = logging.getLogger(__name__)

OPTIONS_ENV_VAR = "QSON_OPTIONS_FILE"


def resolve_options_path() -> Path:
    raw = os.environ.get(OPTIONS_ENV_VAR, "").strip()
    if raw:
        return Path(raw).expanduser()
    return default_options_path()


@lru_cache(maxsize=1)
def load_service_options() -> QsonOptions:
    p = resolve_options_path()
    if not p.exists():
        raise RuntimeError(f"找不到 QSON 配置文件：{p}")
    opts = QsonOptions.load_from_yaml(p)
    logger.info("QSON 配置已加载：%s %s", p, opts.to_dict())
    return opts
