"""
QSON（Query String Object Notation）编解码。

定位：
- 把 JSON 形态的值编码为紧凑的 ASCII 文本，可直接嵌入 URL 查询串而几乎不需要百分号转义：
  `{"a": 3, "b": "test", "c": true}` → `(a~3'b~test'c~true)` → 查询串 `a=3&b=test&c=true`。
- 本包只承载编解码本身（文本解析/序列化 + 查询串映射）；HTTP 服务见 qson_backend。
"""

from __future__ import annotations

from .errors import FormatError, ParseError, QsonError
from .options import DEFAULT_OPTIONS, QsonOptions
from .parser import parse
from .querystring import (
    decode_uri_component,
    encode_uri_component,
    from_param_map,
    from_query_string,
    to_param_map,
    to_query_string,
)
from .serializer import serialize, stringify
from .value import DEFAULT_PARAM_NAME, ParamMap, Value

__all__ = [
    "DEFAULT_OPTIONS",
    "DEFAULT_PARAM_NAME",
    "FormatError",
    "ParamMap",
    "ParseError",
    "QsonError",
    "QsonOptions",
    "Value",
    "decode_uri_component",
    "encode_uri_component",
    "from_param_map",
    "from_query_string",
    "parse",
    "serialize",
    "stringify",
    "to_param_map",
    "to_query_string",
]
