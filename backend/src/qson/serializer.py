"""
值 → QSON 文本 的序列化器。

规则概要：
- null/true/false 原样输出；number 输出规范十进制文本（整数值不带小数部分）。
- 字符串若会被解析器读成 null/true/false/number，则加强制字符串前缀 `_`；
  否则转义 `~` `'` `)` `!`（任意位置）以及 `(` `_`（仅首字符）。
- array：`(` + 条目以 `'` 连接 + `)`；object：`(` + `key~value` 以 `'` 连接 + `)`；
  空 object 使用哨兵 `(~~)`，与空 array `()` 区分。

约束：
- 序列化前先整体校验（check_value）：非 str key / 不支持的类型 / 非有限数 / 嵌套过深 → FormatError。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .errors import FormatError
from .options import DEFAULT_OPTIONS, QsonOptions
from .value import (
    CONTROL_ESCAPES,
    END_COMPOUND,
    ENTRY_SEP,
    ESCAPE,
    FORCE_STRING,
    KEY_VAL_SEP,
    START_COMPOUND,
    Value,
    check_value,
    is_array,
    looks_like_literal,
    to_double,
)


EMPTY_OBJECT = START_COMPOUND + KEY_VAL_SEP + KEY_VAL_SEP + END_COMPOUND
EMPTY_ARRAY = START_COMPOUND + END_COMPOUND

_ALWAYS_ESCAPED = frozenset((KEY_VAL_SEP, ENTRY_SEP, END_COMPOUND, ESCAPE))
_LEADING_ESCAPED = frozenset((START_COMPOUND, FORCE_STRING))
_CONTROL_LETTERS = {ch: letter for letter, ch in CONTROL_ESCAPES.items()}


def format_number(value: int | float) -> str:
    """number 的规范文本：1000 / 1.2 / 1e-20 / 1e21（指数不带 '+'、不带前导 0）。"""

    d = to_double(value)
    if d.is_integer() and abs(d) < 1e21:
        return str(int(d))

    text = repr(d)
    if "e" not in text:
        return text
    mantissa, exp = text.split("e")
    if mantissa.endswith(".0"):
        mantissa = mantissa[:-2]
    return f"{mantissa}e{int(exp)}"


def _ascii_escape(ch: str) -> str:
    letter = _CONTROL_LETTERS.get(ch)
    if letter is not None:
        return ESCAPE + letter
    cp = ord(ch)
    if cp > 0xFFFF:
        cp -= 0x10000
        return f"{ESCAPE}u{0xD800 + (cp >> 10):04x}{ESCAPE}u{0xDC00 + (cp & 0x3FF):04x}"
    return f"{ESCAPE}u{cp:04x}"


def escape_text(text: str, *, escape_non_ascii: bool = False) -> str:
    """
    按 key/value 共用规则转义（不处理强制字符串前缀）。

    escape_non_ascii 模式下，相邻的高代理 + 低代理码元会写成 `!uD8xx!uDCxx`，
    而解析器会把它合成为一个 BMP 之外的字符；这种输入无法原样读回，抛 FormatError。
    单独出现的代理码元照常写成一个 `!u` 转义。
    """

    out: list[str] = []
    for i, ch in enumerate(text):
        if ch in _ALWAYS_ESCAPED or (i == 0 and ch in _LEADING_ESCAPED):
            out.append(ESCAPE + ch)
        elif escape_non_ascii and not (" " <= ch <= "~"):
            if "\ud800" <= ch <= "\udbff" and "\udc00" <= text[i + 1 : i + 2] <= "\udfff":
                raise FormatError(f"相邻的代理码元无法在 ASCII 模式下原样表达：位置 {i} 的 {text[i : i + 2]!r}")
            out.append(_ascii_escape(ch))
        else:
            out.append(ch)
    return "".join(out)


def stringify_string(text: str, *, escape_non_ascii: bool = False) -> str:
    if looks_like_literal(text):
        # 形如 null/true/false/数字：加 `_` 即可消歧，这些文本本身不含需转义的字符
        return FORCE_STRING + text
    return escape_text(text, escape_non_ascii=escape_non_ascii)


def _write(value: object, escape_non_ascii: bool) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, str):
        return stringify_string(value, escape_non_ascii=escape_non_ascii)

    if is_array(value):
        items: Sequence[object] = value  # type: ignore[assignment]
        if len(items) == 1 and items[0] == "" and isinstance(items[0], str):
            # [""] 若写成 "()" 会与空 array 冲突；用强制空串 `_`
            return START_COMPOUND + FORCE_STRING + END_COMPOUND
        return START_COMPOUND + ENTRY_SEP.join(_write(v, escape_non_ascii) for v in items) + END_COMPOUND

    obj: Mapping[str, object] = value  # type: ignore[assignment]
    if not obj:
        return EMPTY_OBJECT
    parts = (
        escape_text(k, escape_non_ascii=escape_non_ascii) + KEY_VAL_SEP + _write(v, escape_non_ascii)
        for k, v in obj.items()
    )
    return START_COMPOUND + ENTRY_SEP.join(parts) + END_COMPOUND


def stringify(value: Value, options: QsonOptions | None = None) -> str:
    """把值序列化为 QSON 文本；结构违约抛 FormatError。"""

    opts = options or DEFAULT_OPTIONS
    check_value(value, max_depth=opts.max_depth)
    return _write(value, opts.escape_non_ascii)


serialize = stringify
