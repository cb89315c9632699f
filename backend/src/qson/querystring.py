"""
QSON 查询串层：值 ↔ ParamMap（参数名 → QSON 片段）↔ 百分号编码的查询串。

约定：
- 顶层是 object 且所有 key 都是“安全参数名”（且不等于默认参数名）时，每个 key 展开为一个查询参数：
  `{"a": 3, "b": "test"}` → `a=3&b=test`。
- 否则整个值序列化为一个片段，放在默认参数名（`_`）下：`[1, 2]` → `_=(1'2)`。
- 百分号编码采用 encodeURIComponent 语义：`! ' ( ) * ~ - _ .` 与字母数字保持原样，
  因而 QSON 的结构字符在 URL 中几乎不需要转义；空格编码为 `%20`，解码时 `+` 也视为空格。
- 输出不带前导 `?`。
- default_name 为空串是调用方配置错误：抛普通 ValueError（与 QsonOptions 的校验一致）。

约束（正确地失败）：
- 每个参数段必须恰好包含一个 `=`，参数名解码后不能为空；同名参数以最后一次出现的值为准；
  末尾的空段（`a=b&`）允许，其它空段（`&a=b`、`a=b&&c=d`）一律失败。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from urllib.parse import quote, unquote_plus

from .errors import FormatError, ParseError
from .options import DEFAULT_OPTIONS, QsonOptions
from .parser import parse
from .serializer import stringify
from .value import QS_ENTRY_SEP, QS_KEY_VAL_SEP, ParamMap, Value, is_object


logger = logging.getLogger(__name__)


# quote() 本身总是保留字母数字与 "_.-~"；再加上 encodeURIComponent 额外保留的子分隔符
_URI_COMPONENT_SAFE = "!'()*"

_BAD_PERCENT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def encode_uri_component(text: str, encoding: str = "utf-8") -> str:
    try:
        return quote(text, safe=_URI_COMPONENT_SAFE, encoding=encoding, errors="strict")
    except UnicodeEncodeError as e:
        raise FormatError(f"无法用 {encoding} 编码查询参数：{text!r}") from e


def decode_uri_component(text: str, encoding: str = "utf-8", *, position: int = 0) -> str:
    """百分号解码（`+` 视为空格）；position 为 text 在整个查询串中的偏移，仅用于报错。"""

    m = _BAD_PERCENT_RE.search(text)
    if m is not None:
        raise ParseError(f"非法百分号转义：{text[m.start() : m.start() + 3]!r}", position + m.start())
    try:
        return unquote_plus(text, encoding=encoding, errors="strict")
    except UnicodeDecodeError as e:
        raise ParseError(f"百分号转义无法按 {encoding} 解码：{text!r}", position) from e


def _resolve_name(default_name: str | None, opts: QsonOptions) -> str:
    """
    显式传入的 default_name 优先，否则取 opts.default_param_name。

    空名属于调用方配置错误，与 QsonOptions.__post_init__ 对 default_param_name 的校验一致：
    抛普通 ValueError，不归入 ParseError/FormatError（后两者只描述输入文本与待编码的值）。
    """

    name = opts.default_param_name if default_name is None else default_name
    if not isinstance(name, str) or name == "":
        raise ValueError(f"默认参数名必须是非空字符串：{name!r}")
    return name


def _spreadable(obj: Mapping[object, object], name: str, opts: QsonOptions) -> bool:
    for key in obj:
        if not isinstance(key, str):
            raise FormatError(f"object 的 key 只允许 str：{key!r}")
        if key == name or not opts.is_safe_param_name(key):
            logger.debug("key %r 不能直接作为查询参数名，整体写入参数 %r", key, name)
            return False
    return True


def to_param_map(value: Value, default_name: str | None = None, options: QsonOptions | None = None) -> ParamMap:
    """值 → ParamMap（参数名 → 已序列化的 QSON 片段）。"""

    opts = options or DEFAULT_OPTIONS
    name = _resolve_name(default_name, opts)

    if is_object(value) and _spreadable(value, name, opts):  # type: ignore[arg-type]
        return {key: stringify(v, opts) for key, v in value.items()}  # type: ignore[union-attr]
    return {name: stringify(value, opts)}


def from_param_map(
    params: Mapping[str, str],
    default_name: str | None = None,
    ignore_keys: Iterable[str] = (),
    options: QsonOptions | None = None,
) -> Value:
    """ParamMap → 值；只剩默认参数名一个条目时解包为该值本身。"""

    opts = options or DEFAULT_OPTIONS
    name = _resolve_name(default_name, opts)
    ignored = frozenset(ignore_keys)

    result: dict[str, Value] = {}
    for key, fragment in params.items():
        if key in ignored:
            continue
        try:
            result[key] = parse(fragment, opts)
        except ParseError as e:
            raise ParseError(f"参数 {key!r} 的值不是合法 QSON：{e.reason}", e.position) from e

    if len(result) == 1 and name in result:
        return result[name]
    return result


def to_query_string(value: Value, default_name: str | None = None, options: QsonOptions | None = None) -> str:
    """值 → 可直接拼到 URL `?` 之后的查询串（本身不含 `?`）。"""

    opts = options or DEFAULT_OPTIONS
    params = to_param_map(value, default_name, opts)
    return QS_ENTRY_SEP.join(
        encode_uri_component(k, opts.encoding) + QS_KEY_VAL_SEP + encode_uri_component(v, opts.encoding)
        for k, v in params.items()
    )


def split_query_string(text: str, encoding: str = "utf-8") -> ParamMap:
    """查询串 → ParamMap（只做分段与百分号解码，不解析 QSON）。"""

    segments = text.split(QS_ENTRY_SEP)
    while segments and segments[-1] == "":
        segments.pop()

    params: ParamMap = {}
    offset = 0
    for seg in segments:
        if seg.count(QS_KEY_VAL_SEP) != 1:
            logger.debug("拒绝查询串参数段 %r（offset=%d）", seg, offset)
            raise ParseError(f"查询串参数段必须恰好包含一个 '{QS_KEY_VAL_SEP}'：{seg!r}", offset)
        raw_key, raw_value = seg.split(QS_KEY_VAL_SEP)
        key = decode_uri_component(raw_key, encoding, position=offset)
        if key == "":
            raise ParseError(f"查询串参数名为空：{seg!r}", offset)
        params[key] = decode_uri_component(raw_value, encoding, position=offset + len(raw_key) + 1)
        offset += len(seg) + 1
    return params


def from_query_string(
    text: str,
    default_name: str | None = None,
    ignore_keys: Iterable[str] = (),
    options: QsonOptions | None = None,
) -> Value:
    """查询串（不含 `?`）→ 值；空串解码为空 object。"""

    opts = options or DEFAULT_OPTIONS
    if text == "":
        return {}
    params = split_query_string(text, opts.encoding)
    return from_param_map(params, default_name, ignore_keys, opts)
