"""
后端代码根包。

定位：
- QSON 编解码本身（文本解析/序列化、查询串映射）放在 backend/src/qson 下，不依赖 Web 框架。
- HTTP 服务（FastAPI）与服务端配置放在 backend/src/qson_backend 下，只做编排与错误映射。
"""
