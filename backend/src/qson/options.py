"""
QSON 编解码选项（显式配置，逐次调用传入）。

定位：
- 没有进程级可变开关（字符编码、允许任意参数名、输出纯 ASCII 等）：
  所有开关集中在一个不可变的 QsonOptions 中，由调用方显式传给 parse/stringify/查询串函数。
- 支持从 YAML 加载（服务端配置文件），字段与 dataclass 一一对应；未知字段必须失败。
"""

from __future__ import annotations

import codecs
import dataclasses
import re
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any

import yaml

from .value import DEFAULT_PARAM_NAME


# 解析器与序列化器每层嵌套约占 2 个 Python 栈帧；解释器默认递归上限为 1000，
# 需给调用方（测试框架、ASGI 服务）留出余量。超过该值的 max_depth 一律拒绝。
MAX_DEPTH_LIMIT = 384


@dataclass(frozen=True)
class QsonOptions:
    """QSON 选项。"""

    default_param_name: str = DEFAULT_PARAM_NAME
    allow_any_param_name: bool = False
    param_name_pattern: str = r"\w+"
    escape_non_ascii: bool = False
    encoding: str = "utf-8"
    max_depth: int = 256

    def __post_init__(self) -> None:
        if not isinstance(self.default_param_name, str) or self.default_param_name == "":
            raise ValueError("default_param_name 必须是非空字符串")
        if not isinstance(self.max_depth, int) or isinstance(self.max_depth, bool) or self.max_depth < 1:
            raise ValueError(f"max_depth 必须是正整数：{self.max_depth!r}")
        if self.max_depth > MAX_DEPTH_LIMIT:
            raise ValueError(f"max_depth 不能超过 {MAX_DEPTH_LIMIT}：{self.max_depth!r}")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ValueError(f"未知 encoding：{self.encoding!r}") from e
        try:
            re.compile(self.param_name_pattern)
        except re.error as e:
            raise ValueError(f"param_name_pattern 不是合法正则：{self.param_name_pattern!r}（{e}）") from e

    @cached_property
    def param_name_regex(self) -> re.Pattern[str]:
        # \w 只匹配 ASCII 单词字符：`é` 不是安全参数名
        return re.compile(self.param_name_pattern, re.ASCII)

    def is_safe_param_name(self, name: str) -> bool:
        """name 能否直接作为查询参数名（不含与默认参数名冲突的判断）。"""

        if name == "":
            return False
        if self.allow_any_param_name:
            return True
        return self.param_name_regex.fullmatch(name) is not None

    def replace(self, **changes: Any) -> "QsonOptions":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "QsonOptions":
        if d is None:
            return cls()
        if not isinstance(d, dict):
            raise ValueError(f"QsonOptions 配置必须是 dict：收到 {type(d).__name__}")

        known = {f.name: f for f in dataclasses.fields(cls)}
        unknown = sorted(set(d) - set(known))
        if unknown:
            raise ValueError(f"QsonOptions 未知字段：{unknown!r}")

        kwargs: dict[str, Any] = {}
        for name, raw in d.items():
            expected = type(known[name].default)
            if expected is int and (isinstance(raw, bool) or not isinstance(raw, int)):
                raise ValueError(f"QsonOptions.{name} 必须是 int：{raw!r}")
            if expected is not int and not isinstance(raw, expected):
                raise ValueError(f"QsonOptions.{name} 必须是 {expected.__name__}：{raw!r}")
            kwargs[name] = raw
        return cls(**kwargs)

    @classmethod
    def load_from_yaml(cls, path: Path) -> "QsonOptions":
        """从 YAML 文件加载；允许顶层直接是字段，或嵌套在 `qson:` 下。"""

        d = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if d is None:
            return cls()
        if not isinstance(d, dict):
            raise ValueError(f"QSON 配置文件顶层必须是 mapping：{path}")
        if "qson" in d:
            d = d["qson"]
        return cls.from_dict(d)


DEFAULT_OPTIONS = QsonOptions()
