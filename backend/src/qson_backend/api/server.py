"""
QSON 后端 API（FastAPI）。

约定：
- 服务端口：7140
- 编解码选项来自服务端配置（见 qson_backend.config），请求体只能覆盖默认参数名/忽略的参数名。

API 设计原则：
- 与交互式演示页一致：一次 encode 同时给出 stringify 与 toQueryString 两种形态、长度对比与回环校验结果。
- 严格校验，宁可失败，不做静默降级：ParseError/FormatError 一律返回 400。
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from qson import from_query_string, parse, stringify, to_query_string

from ..config import load_service_options


logger = logging.getLogger(__name__)


app = FastAPI(title="QSON Backend", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class EncodeRequest(BaseModel):
    value: Any = None
    default_name: str | None = Field(default=None, min_length=1)


class ParseRequest(BaseModel):
    qson: str


class FromQueryStringRequest(BaseModel):
    query_string: str
    default_name: str | None = Field(default=None, min_length=1)
    ignore_keys: list[str] = []


def _bad_request(what: str, e: ValueError) -> HTTPException:
    logger.info("%s 失败：%s", what, e)
    return HTTPException(status_code=400, detail=str(e))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/qson/encode")
def api_encode(req: EncodeRequest) -> dict[str, Any]:
    opts = load_service_options()
    try:
        encoded = stringify(req.value, opts)
        query_string = to_query_string(req.value, req.default_name, opts)
        roundtrip_ok = (
            parse(encoded, opts) == req.value
            and from_query_string(query_string, req.default_name, options=opts) == req.value
        )
    except ValueError as e:
        raise _bad_request("encode", e) from e

    return {
        "qson": encoded,
        "query_string": query_string,
        "json_length": len(json.dumps(req.value, ensure_ascii=False, separators=(",", ":"))),
        "qson_length": len(encoded),
        "query_string_length": len(query_string),
        "roundtrip_ok": roundtrip_ok,
    }


@app.post("/qson/parse")
def api_parse(req: ParseRequest) -> dict[str, Any]:
    try:
        return {"value": parse(req.qson, load_service_options())}
    except ValueError as e:
        raise _bad_request("parse", e) from e


@app.post("/qson/from_query_string")
def api_from_query_string(req: FromQueryStringRequest) -> dict[str, Any]:
    opts = load_service_options()
    try:
        value = from_query_string(req.query_string, req.default_name, req.ignore_keys, opts)
    except ValueError as e:
        raise _bad_request("from_query_string", e) from e
    return {"value": value}


@app.get("/qson/decode")
def api_decode(request: Request) -> dict[str, Any]:
    """把本次请求自身的查询串按 QSON 解码（演示页的“从地址栏还原”）。"""

    try:
        return {"value": from_query_string(request.url.query, options=load_service_options())}
    except ValueError as e:
        raise _bad_request("decode", e) from e
