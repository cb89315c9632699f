"""
QSON 后端开发服务器启动脚本。

定位：
- 未 `pip install -e .` 时也能直接启动：启动时把 `backend/src` 加到 `PYTHONPATH`。
- 约定后端端口为 7140。

用法：
  python backend/run_server.py

可选参数（透传给 uvicorn）：
  python backend/run_server.py --reload
  python backend/run_server.py --host 0.0.0.0 --port 7140
  python backend/run_server.py --options docs/data/qson_options.yaml
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

import uvicorn


def main() -> None:
    backend_dir = Path(__file__).resolve().parent
    src_dir = backend_dir / "src"
    if not src_dir.exists():
        raise RuntimeError(f"找不到后端源码目录：{src_dir}")

    sys.path.insert(0, str(src_dir))

    parser = argparse.ArgumentParser(add_help=True)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=7140)
    parser.add_argument("--reload", action="store_true", default=False)
    parser.add_argument("--log-level", default="info")
    parser.add_argument("--options", default=None, help="QSON 配置 YAML（默认 docs/data/qson_options.yaml）")
    args, unknown = parser.parse_known_args(sys.argv[1:])
    if unknown:
        raise SystemExit(f"不支持的参数：{unknown!r}")

    if args.options:
        options_path = Path(args.options).expanduser().resolve()
        if not options_path.exists():
            raise SystemExit(f"找不到配置文件：{options_path}")
        # reload 模式下 worker 是子进程，只能经环境变量传递
        os.environ["QSON_OPTIONS_FILE"] = str(options_path)

    # --reload 默认会 watch 当前工作目录；这里把 watch 范围显式限定到后端源码目录。
    reload_dirs = [str(src_dir)] if args.reload else None

    uvicorn.run(
        "qson_backend.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=reload_dirs,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
