"""
QSON 解析器回归测试：错误位置、key/value 共享扫描、嵌套深度限制。

用法：
  python scripts/test_parser.py
"""

from __future__ import annotations

from pathlib import Path
import sys


REPO_ROOT = Path(__file__).resolve().parents[1]


def _ensure_backend_src_on_path(repo_root: Path) -> None:
    src_dir = repo_root / "backend" / "src"
    if not src_dir.exists():
        raise RuntimeError(f"找不到 backend/src：{src_dir}")
    sys.path.insert(0, str(src_dir))


_ensure_backend_src_on_path(REPO_ROOT)

from qson import ParseError, QsonOptions, parse, stringify  # noqa: E402
from qson.options import MAX_DEPTH_LIMIT  # noqa: E402
from qson.parser import QsonParser  # noqa: E402


def _parse_error(text: str, options: QsonOptions | None = None) -> ParseError:
    try:
        parse(text, options)
    except ParseError as e:
        return e
    raise AssertionError(f"期望 ParseError：{text!r}")


def test_error_positions() -> None:
    # `'` 之后缺少条目：在 `)` 处期望 `~`
    e = _parse_error("(a~b')")
    assert e.position == 5, e
    assert isinstance(e, ValueError)

    assert _parse_error("!q").position == 0
    assert _parse_error("Test!").position == 4
    assert _parse_error("ab!u12").position == 2
    assert _parse_error("1~2").position == 1
    assert _parse_error("(1").position == 2


def test_shared_token_scanning() -> None:
    p = QsonParser("_1~3", max_depth=8)
    tok = p.scan_token()
    assert tok.text == "1" and tok.forced and tok.source == "_1"
    assert tok.as_key() == "_1"
    assert tok.coerce() == "1"
    assert p.pos == 2

    p = QsonParser("a!~b'c", max_depth=8)
    tok = p.scan_token()
    assert tok.text == "a~b" and not tok.forced and tok.source == "a!~b"
    assert p.pos == 4

    p = QsonParser("-0.5e3)", max_depth=8)
    tok = p.scan_token()
    assert tok.coerce() == -500.0


def test_keys_are_not_coerced() -> None:
    assert parse("(true~1'null~2'1.5~3)") == {"true": 1.0, "null": 2.0, "1.5": 3.0}
    # 首个 key 与后续 key 走同一套转义规则
    assert parse("(!_a~1'!_b~2)") == {"_a": 1.0, "_b": 2.0}
    assert parse("(x!ty~1'a!u00e9~2)") == {"x\ty": 1.0, "aé": 2.0}

    # 同名 key：后者覆盖前者，顺序按首次出现
    obj = parse("(a~1'b~x'a~(2))")
    assert obj == {"a": [2.0], "b": "x"}
    assert list(obj) == ["a", "b"]


def test_scalars() -> None:
    assert parse("") == ""
    assert parse("null") is None
    assert parse("true") is True
    assert parse("false") is False
    assert parse("_false") == "false"
    assert parse("01") == "01"
    assert parse("1.") == "1."
    assert parse("-0") == 0.0
    assert parse("a(b") == "a(b"
    assert parse("(1)'") == [1.0]
    # 孤立的代理码元原样保留
    assert parse("!ud83d") == "\ud83d"


def test_depth_limit() -> None:
    opts = QsonOptions(max_depth=3)
    assert parse("(((1)))", opts) == [[[1.0]]]
    e = _parse_error("((((1))))", opts)
    assert e.position == 3, e

    # 默认上限远低于解释器递归上限：深嵌套输入必须得到 ParseError 而不是 RecursionError
    deep = "(" * 5000 + ")" * 5000
    _parse_error(deep)
    # 允许配置的最大深度同样在解释器递归上限之内失败
    e = _parse_error(deep, QsonOptions(max_depth=MAX_DEPTH_LIMIT))
    assert e.position == MAX_DEPTH_LIMIT, e


def test_reserialize_is_identity() -> None:
    texts = [
        "(a~3'b~test'c~true)",
        "(1'2'3)",
        "(~~)",
        "()",
        "(_)",
        "_true",
        "(!(~1'!!~2'!_~3)",
        "(a~(1'2)'b~(c~(d~e))'f~(((3))))",
        "(x~(~~)'y~()'z~(null'_null'1e-20))",
    ]
    for t in texts:
        assert stringify(parse(t)) == t, t


def test_rejects_non_text() -> None:
    try:
        parse(b"(1)")  # type: ignore[arg-type]
    except TypeError:
        return
    raise AssertionError("bytes 输入应当抛 TypeError")


def main() -> None:
    test_error_positions()
    test_shared_token_scanning()
    test_keys_are_not_coerced()
    test_scalars()
    test_depth_limit()
    test_reserialize_is_identity()
    test_rejects_non_text()
    print("[OK] qson parser")


if __name__ == "__main__":
    main()
