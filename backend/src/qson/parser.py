"""
QSON 文本 → 值 的解析器（递归下降）。

文法（非正式）：
- value    = compound | token
- compound = '(' ')'                                   空 array
           | '(' '~' '~' ')'                           空 object（哨兵写法）
           | '(' token '~' value ("'" key '~' value)* ')'   object
           | '(' value ("'" value)* ')'                array
- token    = '_'? (普通字符 | '!' 转义)*，遇到 `~` `'` `)` 结束

实现说明：
- 单一前进游标 + 一个字符前瞻；唯一的“回看”是 compound 首项：先按共享例程读出一个 token，
  再看其后是否紧跟 `~` 决定它是 object 的 key（取原始文本，不做类型推断）还是 array 的首元素。
- key 与 value 共用同一个扫描例程（RawToken），转义规则完全一致。
- 嵌套深度受 QsonOptions.max_depth 限制，超限即失败。

约束（正确地失败）：
- 任何未闭合的括号、object 中缺少 `~`、`'` 之后缺少条目、非法转义，都抛 ParseError（带游标位置）。
- 顶层值之后只允许紧跟 `'`（查询串层把它当作“值结束”）；其它剩余字符一律视为多余数据。
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from .errors import ParseError
from .options import DEFAULT_OPTIONS, QsonOptions
from .value import (
    CONTROL_ESCAPES,
    END_COMPOUND,
    ENTRY_SEP,
    ESCAPE,
    FORCE_STRING,
    KEY_VAL_SEP,
    LITERAL_ESCAPES,
    START_COMPOUND,
    TOKEN_ENDING_CHARS,
    Value,
    is_number_string,
)


_HEX4_RE = re.compile(r"[0-9A-Fa-f]{4}")


@dataclass(frozen=True)
class RawToken:
    """共享扫描例程的结果：解码后的文本 + 是否带强制字符串标记 + 原始片段。"""

    text: str
    forced: bool
    source: str
    start: int

    def as_key(self) -> str:
        # key 永远是字符串：保留原始的 `_` 前缀（`(_1~3)` 的 key 是 "_1"）
        return FORCE_STRING + self.text if self.forced else self.text

    def coerce(self) -> Value:
        if self.forced:
            return self.text
        t = self.text
        if t == "null":
            return None
        if t == "true":
            return True
        if t == "false":
            return False
        if is_number_string(t):
            d = float(t)
            if not math.isfinite(d):
                raise ParseError(f"数字超出 double 范围：{t!r}", self.start)
            return d
        return t


class QsonParser:
    """单次使用的解析器：一个实例只解析一段输入。"""

    def __init__(self, text: str, *, max_depth: int) -> None:
        self.text = text
        self.pos = 0
        self.max_depth = max_depth

    def _error(self, reason: str, position: int | None = None) -> ParseError:
        return ParseError(reason, self.pos if position is None else position)

    def _peek(self) -> str | None:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def _accept(self, ch: str) -> bool:
        if self._peek() != ch:
            return False
        self.pos += 1
        return True

    def _expect(self, ch: str) -> None:
        if self._accept(ch):
            return
        found = self._peek()
        if found is None:
            raise self._error(f"期望 {ch!r}，但输入已结束")
        raise self._error(f"期望 {ch!r}，实际为 {found!r}")

    def scan_token(self) -> RawToken:
        start = self.pos
        forced = self._accept(FORCE_STRING)
        out: list[str] = []
        n = len(self.text)
        while self.pos < n:
            ch = self.text[self.pos]
            if ch in TOKEN_ENDING_CHARS:
                break
            if ch == ESCAPE:
                self._read_escape(out)
            else:
                out.append(ch)
                self.pos += 1
        return RawToken(text="".join(out), forced=forced, source=self.text[start : self.pos], start=start)

    def _read_escape(self, out: list[str]) -> None:
        esc_pos = self.pos
        self.pos += 1
        if self.pos >= len(self.text):
            raise self._error(f"输入以转义字符 {ESCAPE!r} 结尾", esc_pos)

        ch = self.text[self.pos]
        if ch in LITERAL_ESCAPES:
            out.append(ch)
            self.pos += 1
            return
        if ch in CONTROL_ESCAPES:
            out.append(CONTROL_ESCAPES[ch])
            self.pos += 1
            return
        if ch == "u":
            unit = self._read_hex4(esc_pos)
            # 高代理 + 紧随其后的低代理转义 → 合成一个 BMP 之外的码点
            if 0xD800 <= unit <= 0xDBFF and self.text.startswith(ESCAPE + "u", self.pos):
                low_hex = self.text[self.pos + 2 : self.pos + 6]
                if _HEX4_RE.fullmatch(low_hex) and 0xDC00 <= int(low_hex, 16) <= 0xDFFF:
                    unit = 0x10000 + ((unit - 0xD800) << 10) + (int(low_hex, 16) - 0xDC00)
                    self.pos += 6
            out.append(chr(unit))
            return
        raise self._error(f"非法转义序列 {ESCAPE}{ch}", esc_pos)

    def _read_hex4(self, esc_pos: int) -> int:
        # self.pos 指向 'u'
        hex_str = self.text[self.pos + 1 : self.pos + 5]
        if not _HEX4_RE.fullmatch(hex_str):
            raise self._error(f"unicode 转义必须是 {ESCAPE}u + 4 位十六进制：{self.text[esc_pos : esc_pos + 6]!r}", esc_pos)
        self.pos += 5
        return int(hex_str, 16)

    def value(self, depth: int) -> Value:
        """读一个值；depth 为外层 compound 的个数。"""

        if self._accept(START_COMPOUND):
            if depth >= self.max_depth:
                raise self._error(f"嵌套层数超过 max_depth={self.max_depth}", self.pos - 1)
            return self._compound(depth + 1)
        return self.scan_token().coerce()

    def _compound(self, depth: int) -> Value:
        # '(' 已消费
        if self._accept(END_COMPOUND):
            return []

        first_pos = self.pos
        token: RawToken | None = None
        if self._peek() == START_COMPOUND:
            first = self.value(depth)
        else:
            token = self.scan_token()
            first = token.coerce() if self._peek() != KEY_VAL_SEP else None

        result: Value
        if self._accept(KEY_VAL_SEP):
            if token is None:
                raise self._error("compound 不能作为 object 的 key", first_pos)
            result = self._object_entries(token.as_key(), depth)
        else:
            arr = [first]
            while self._accept(ENTRY_SEP):
                arr.append(self.value(depth))
            result = arr

        self._expect(END_COMPOUND)
        return result

    def _object_entries(self, first_key: str, depth: int) -> dict[str, Value]:
        obj: dict[str, Value] = {}
        if first_key == "" and self._accept(KEY_VAL_SEP):
            # 哨兵 `(~~)`：空 object
            return obj

        obj[first_key] = self.value(depth)
        while self._accept(ENTRY_SEP):
            key_token = self.scan_token()
            key = key_token.as_key()
            self._expect(KEY_VAL_SEP)
            # 同名 key：后者覆盖前者，位置保持首次出现处
            obj[key] = self.value(depth)
        return obj

    def parse(self) -> Value:
        result = self.value(0)
        if self.pos < len(self.text) and self.text[self.pos] != ENTRY_SEP:
            raise self._error(f"值之后存在多余数据：{self.text[self.pos : self.pos + 10]!r}")
        return result


def parse(text: str, options: QsonOptions | None = None) -> Value:
    """解析 QSON 文本；失败抛 ParseError。"""

    if not isinstance(text, str):
        raise TypeError(f"QSON 输入必须是 str：收到 {type(text).__name__}")
    opts = options or DEFAULT_OPTIONS
    return QsonParser(text, max_depth=opts.max_depth).parse()
