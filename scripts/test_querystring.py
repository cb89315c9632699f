"""
QSON 查询串层回归测试：ParamMap 展开规则、百分号编解码、错误位置。

用法：
  python scripts/test_querystring.py
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

from qson import (  # noqa: E402
    FormatError,
    ParseError,
    QsonError,
    QsonOptions,
    decode_uri_component,
    encode_uri_component,
    from_param_map,
    from_query_string,
    to_param_map,
    to_query_string,
)
from qson.querystring import split_query_string  # noqa: E402


def _expect_parse_error(fn, *args, **kwargs) -> ParseError:
    try:
        fn(*args, **kwargs)
    except ParseError as e:
        return e
    raise AssertionError(f"期望 ParseError：{fn.__name__}{args!r}")


def test_param_map_spreading() -> None:
    assert to_param_map({"a": 1, "b": "x"}) == {"a": "1", "b": "x"}
    assert to_param_map([1]) == {"_": "(1)"}
    assert to_param_map("x") == {"_": "x"}
    assert to_param_map({}) == {}

    # 与默认参数名同名的 key 不能展开，否则解码时会被误解包
    assert to_param_map({"_": 1, "a": 2}) == {"_": "(!_~1'a~2)"}
    assert from_param_map({"_": "(!_~1'a~2)"}) == {"_": 1.0, "a": 2.0}

    assert to_param_map({"q": 1}, default_name="q") == {"q": "(q~1)"}
    assert from_param_map({"q": "(q~1)"}, default_name="q") == {"q": 1.0}

    # 空 key 即使在 allow_any 模式下也不是合法参数名
    opts = QsonOptions(allow_any_param_name=True)
    assert to_param_map({"": 1}, options=opts) == {"_": "(~1)"}
    assert to_param_map({"a.b": 1}, options=opts) == {"a.b": "1"}

    opts = QsonOptions(param_name_pattern=r"[a-z]+(?:\.[a-z]+)*")
    assert to_param_map({"a.b": 1}, options=opts) == {"a.b": "1"}
    assert to_param_map({"a1": 1}, options=opts) == {"_": "(a1~1)"}


def test_from_param_map() -> None:
    assert from_param_map({"a": "1", "_": "x"}) == {"a": 1.0, "_": "x"}
    assert from_param_map({"_": "(1'2)", "utm": "("}, ignore_keys=["utm"]) == [1.0, 2.0]
    assert from_param_map({}) == {}

    e = _expect_parse_error(from_param_map, {"a": "(1"})
    assert "'a'" in e.reason and e.position == 2, e

    # 默认参数名是调用方参数，与 QsonOptions.default_param_name 同一条校验：普通 ValueError
    for call in (
        lambda: from_param_map({"a": "1"}, default_name=""),
        lambda: to_param_map([1], default_name=""),
        lambda: to_query_string([1], default_name=""),
    ):
        try:
            call()
        except QsonError:
            raise AssertionError("空的默认参数名不属于编解码错误")
        except ValueError:
            continue
        raise AssertionError("空的默认参数名应当失败")


def test_uri_component() -> None:
    assert encode_uri_component("a b!'()*~-_.") == "a%20b!'()*~-_."
    assert encode_uri_component("a&b=c+d/e?") == "a%26b%3Dc%2Bd%2Fe%3F"
    assert encode_uri_component("é") == "%C3%A9"
    assert decode_uri_component("a+b%20c%21") == "a b c!"

    e = _expect_parse_error(decode_uri_component, "ab%2", position=10)
    assert e.position == 12, e
    _expect_parse_error(decode_uri_component, "%E9")

    try:
        encode_uri_component("€", "latin-1")
    except FormatError:
        pass
    else:
        raise AssertionError("latin-1 无法编码 €，应当抛 FormatError")


def test_encoding_option() -> None:
    opts = QsonOptions(encoding="latin-1")
    assert to_query_string("é", options=opts) == "_=%E9"
    assert from_query_string("_=%E9", options=opts) == "é"
    try:
        to_query_string("€", options=opts)
    except FormatError:
        pass
    else:
        raise AssertionError("latin-1 无法编码 €，应当抛 FormatError")


def test_split_query_string() -> None:
    assert split_query_string("a=x+y&b=%2B&") == {"a": "x y", "b": "+"}
    assert split_query_string("") == {}

    assert _expect_parse_error(split_query_string, "a=1&&b=2").position == 4
    assert _expect_parse_error(split_query_string, "a=1&b=%zz").position == 6
    assert _expect_parse_error(split_query_string, "a=1&b").position == 4
    # 同名参数：后者覆盖前者（解码后比较，`%61` 即 `a`）
    assert split_query_string("a=1&b=2&%61=3") == {"a": "3", "b": "2"}
    assert _expect_parse_error(split_query_string, "a=%ff").position == 2


def test_from_query_string() -> None:
    assert from_query_string("a=1'") == {"a": 1.0}
    assert from_query_string("a=1&utm=(", ignore_keys=["utm"]) == {"a": 1.0}
    assert from_query_string("q=(1'x)", default_name="q") == [1.0, "x"]
    assert from_query_string("_=null") is None
    assert from_query_string("_=1&_=(2)") == [2.0]

    value = {"msg": "a & b = c?", "list": [1, "_", ""], "é": {"x": True}}
    qs = to_query_string(value)
    # "é" 不是安全参数名：整个值落在默认参数下
    assert qs.startswith("_=(msg~a%20%26%20b%20%3D%20c%3F'list~(1'!_')'"), qs
    assert from_query_string(qs) == {"msg": "a & b = c?", "list": [1.0, "_", ""], "é": {"x": True}}


def main() -> None:
    test_param_map_spreading()
    test_from_param_map()
    test_uri_component()
    test_encoding_option()
    test_split_query_string()
    test_from_query_string()
    print("[OK] qson query string")


if __name__ == "__main__":
    main()
