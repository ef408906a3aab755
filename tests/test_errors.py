from dataclasses import dataclass

import pytest

from tonic.errors import Error, ErrorList, ErrorType


class _TestErr(Exception):
    pass


@pytest.fixture
def errs():
    return ErrorList(
        [
            Error(ValueError("first"), ErrorType.PRIVATE),
            Error(ValueError("second"), ErrorType.PRIVATE, "some data"),
            Error(ValueError("third"), ErrorType.PUBLIC, {"status": "400"}),
        ]
    )


def test_error_basic():
    base = ValueError("test error")
    err = Error(base, ErrorType.PRIVATE)
    assert str(err) == "test error"
    assert err.to_json() == {"error": "test error"}

    assert err.set_type(ErrorType.PUBLIC) is err
    assert err.type == ErrorType.PUBLIC

    assert err.set_meta("some data") is err
    assert err.meta == "some data"
    assert err.to_json() == {"error": "test error", "meta": "some data"}
    assert err.marshal_json() == '{"error":"test error","meta":"some data"}'


def test_error_map_meta():
    err = Error(ValueError("test error"))
    err.set_meta({"status": "200", "data": "some data"})
    assert err.to_json() == {"error": "test error", "status": "200", "data": "some data"}

    err.set_meta({"error": "custom error", "status": "200", "data": "some data"})
    assert err.to_json() == {"error": "custom error", "status": "200", "data": "some data"}


def test_error_struct_meta():
    @dataclass
    class CustomError:
        status: str
        data: str

    err = Error(ValueError("test error"))
    err.set_meta(CustomError(status="200", data="other data"))
    assert err.to_json() == CustomError(status="200", data="other data")


def test_error_json_escapes_html():
    err = Error(ValueError("<b>"))
    assert err.marshal_json() == '{"error":"\\u003cb\\u003e"}'


def test_is_type():
    err = Error(ValueError("x"), ErrorType.PUBLIC)
    assert err.is_type(ErrorType.PUBLIC)
    assert not err.is_type(ErrorType.PRIVATE)
    assert err.is_type(ErrorType.ANY)


def test_error_slice(errs):
    assert errs.by_type(ErrorType.ANY) == errs
    assert str(errs.last()) == "third"
    assert errs.errors() == ["first", "second", "third"]
    assert errs.by_type(ErrorType.PUBLIC).errors() == ["third"]
    assert errs.by_type(ErrorType.PRIVATE).errors() == ["first", "second"]
    assert errs.by_type(ErrorType.PUBLIC | ErrorType.PRIVATE).errors() == [
        "first",
        "second",
        "third",
    ]
    assert len(errs.by_type(ErrorType.BIND)) == 0
    assert str(errs.by_type(ErrorType.BIND)) == ""


def test_error_slice_string(errs):
    assert str(errs) == (
        "Error #01: first\n"
        "Error #02: second\n"
        "     Meta: some data\n"
        "Error #03: third\n"
        "     Meta: map[status:400]\n"
    )


def test_error_slice_json(errs):
    assert errs.to_json() == [
        {"error": "first"},
        {"error": "second", "meta": "some data"},
        {"error": "third", "status": "400"},
    ]
    assert errs.marshal_json() == (
        '[{"error":"first"},{"error":"second","meta":"some data"},'
        '{"error":"third","status":"400"}]'
    )


def test_single_error_slice_json():
    errs = ErrorList([Error(ValueError("first"), ErrorType.PRIVATE)])
    assert errs.to_json() == {"error": "first"}
    assert errs.marshal_json() == '{"error":"first"}'


def test_empty_error_slice():
    errs = ErrorList()
    assert errs.last() is None
    assert errs.to_json() is None
    assert str(errs) == ""
    assert errs.errors() == []


def test_error_unwrap():
    inner = _TestErr("some error")
    err = Error(inner, ErrorType.ANY)
    assert err.err is inner
    assert err.__cause__ is inner
    with pytest.raises(Error) as info:
        raise err
    assert isinstance(info.value.__cause__, _TestErr)