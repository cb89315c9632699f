"""
QSON 值模型与语法常量。

定位：
- QSON 的值空间与 JSON 一致：null / bool / number / string / array / object。
- Python 侧直接用内置类型表达（None / bool / float / str / list / dict），不额外包装：
  解析器自底向上构造新的容器交给调用方；序列化器只读不写。

约束：
- object 的 key 只允许 str；非 str key 是调用方违约，必须显式失败（FormatError），不做强转。
- number 不区分整数/浮点（IEEE double）；解析结果一律为 float，规范文本形式在序列化时决定。
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import TypeAlias

from .errors import FormatError


Scalar: TypeAlias = str | float | int | bool | None
Value: TypeAlias = Scalar | list["Value"] | dict[str, "Value"]
ParamMap: TypeAlias = dict[str, str]


START_COMPOUND = "("
END_COMPOUND = ")"
KEY_VAL_SEP = "~"
ENTRY_SEP = "'"
FORCE_STRING = "_"
ESCAPE = "!"

# 查询串层
QS_ENTRY_SEP = "&"
QS_KEY_VAL_SEP = "="

DEFAULT_PARAM_NAME = "_"

# key/value token 只会被这三个字符终止
TOKEN_ENDING_CHARS = frozenset((KEY_VAL_SEP, ENTRY_SEP, END_COMPOUND))

# 可被 `!` 原样转义的六个结构字符
LITERAL_ESCAPES = frozenset((START_COMPOUND, END_COMPOUND, KEY_VAL_SEP, ENTRY_SEP, FORCE_STRING, ESCAPE))

# `!` + 字母 → 控制字符
CONTROL_ESCAPES = {
    "t": "\t",
    "n": "\n",
    "r": "\r",
    "f": "\f",
    "b": "\b",
}

LITERAL_WORDS = ("null", "true", "false")

_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")


def is_number_string(text: str) -> bool:
    """严格数字文法（与 JSON number 一致，仅 ASCII 数字）。"""

    return _NUMBER_RE.fullmatch(text) is not None


def looks_like_literal(text: str) -> bool:
    """该文本作为未强制的 token 读回时，是否会被当成 null/true/false/number。"""

    return text in LITERAL_WORDS or is_number_string(text)


def to_double(value: int | float, *, where: str = "$") -> float:
    """int/float → 有限 double；超出 double 范围或 nan/inf 抛 FormatError。"""

    try:
        d = float(value)
    except OverflowError as e:
        raise FormatError(f"number 超出 double 范围：{where}={value!r}") from e
    if not math.isfinite(d):
        raise FormatError(f"number 必须是有限值：{where}={value!r}")
    return d


def is_array(value: object) -> bool:
    return isinstance(value, (list, tuple))


def is_object(value: object) -> bool:
    return isinstance(value, Mapping)


def check_value(value: object, *, max_depth: int) -> None:
    """校验 value 是否可被 QSON 表达；发现第一个违约处即抛 FormatError。"""

    # depth：外层 compound 的个数（与解析器的计数方式一致）
    def walk(v: object, depth: int, where: str) -> None:
        if v is None or isinstance(v, (bool, str)):
            return
        if isinstance(v, (int, float)):
            to_double(v, where=where)
            return
        if (is_array(v) or is_object(v)) and depth >= max_depth:
            raise FormatError(f"嵌套层数超过 max_depth={max_depth}：{where}")
        if is_array(v):
            for i, item in enumerate(v):
                walk(item, depth + 1, f"{where}[{i}]")
            return
        if is_object(v):
            for k, item in v.items():
                if not isinstance(k, str):
                    raise FormatError(f"object 的 key 只允许 str：{where} 中的 {k!r}")
                walk(item, depth + 1, f"{where}.{k}")
            return
        raise FormatError(f"不支持的值类型：{where} 为 {type(v).__name__}")

    walk(value, 0, "$")
