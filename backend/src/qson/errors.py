"""
QSON 错误类型。

约定：
- 只有两类错误：ParseError（文本/查询串不合法）与 FormatError（待序列化的值违反结构约束）。
- 二者都继承 ValueError：调用方按“输入校验失败”统一处理（例如 HTTP 400）。
- 选项或调用参数本身不合法（QsonOptions 字段、空的 default_name）抛普通 ValueError，不属于这两类。
- 正确地失败：不返回部分结果，不做尽力恢复。
"""

from __future__ import annotations


class QsonError(ValueError):
    """QSON 编解码错误基类。"""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ParseError(QsonError):
    """QSON 文本或查询串解析失败；position 为出错时的字符偏移。"""

    def __init__(self, reason: str, position: int) -> None:
        super().__init__(f"{reason}（pos={position}）")
        self.reason = reason
        self.position = position


class FormatError(QsonError):
    """值无法序列化（非 str 的 key、不支持的类型、非有限数、嵌套过深）。"""
