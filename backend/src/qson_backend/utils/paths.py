"""
路径与仓库定位工具。

定位：
- 服务端默认配置（docs/data/qson_options.yaml）与回归向量（docs/data/qson_vectors.yaml）都放在仓库内；
  运行时需要定位仓库根目录才能读到它们。
"""

from __future__ import annotations

from pathlib import Path


def find_repo_root(start: Path | None = None) -> Path:
    """向上搜索仓库根目录（基于目录特征）。"""

    cur = (start or Path(__file__)).resolve()
    if cur.is_file():
        cur = cur.parent

    for _ in range(20):
        if (cur / "backend").exists() and (cur / "docs").exists() and (cur / "scripts").exists():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    raise RuntimeError("无法定位仓库根目录（未找到 backend/docs/scripts 三个目录）")


def docs_data_dir() -> Path:
    return find_repo_root() / "docs" / "data"


def default_options_path() -> Path:
    return docs_data_dir() / "qson_options.yaml"


def vectors_path() -> Path:
    return docs_data_dir() / "qson_vectors.yaml"
