from dataclasses import dataclass

import pytest

from durabletask.codec import decode, encode


@dataclass
class _Payload:
    Foo: int


def test_encode_none_is_none():
    assert encode(None) is None


@pytest.mark.parametrize("raw", [None, "", b""])
def test_decode_empty_is_none(raw):
    assert decode(raw) is None


@pytest.mark.parametrize(
    "value",
    ["Hello, 世界!", 42, 3.5, True, [1, 2, 3], {"a": [1, {"b": None}]}, "", 0, False],
)
def test_round_trip(value):
    assert decode(encode(value)) == value


def test_encode_string_is_quoted_utf8():
    assert encode("Hello, 世界!") == '"Hello, 世界!"'


def test_encode_compact():
    assert encode({"Foo": 5}) == '{"Foo":5}'


def test_encode_dataclass():
    assert encode(_Payload(Foo=5)) == '{"Foo":5}'


def test_decode_bytes():
    assert decode(encode("done!").encode("utf-8")) == "done!"


def test_encode_unserializable_raises():
    with pytest.raises(TypeError):
        encode(object())


def test_encode_nan_raises():
    with pytest.raises(ValueError):
        encode(float("nan"))


def test_decode_invalid_raises():
    with pytest.raises(ValueError):
        decode("not json")