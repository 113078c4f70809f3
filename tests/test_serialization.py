import pytest

from discoclient.error import ClientError
from discoclient.serialization import (
    Version,
    deserialize_binary,
    deserialize_json,
    serialize_binary,
    serialize_json,
)

V01 = Version(0, 1)


@pytest.mark.parametrize(
    "value",
    [
        "response",
        0,
        10,
        -3,
        1.5,
        None,
        True,
        [0, 1, 2],
        {"status": 400, "message": "invalid body"},
        b"\x00\xff",
    ],
)
def test_binary_round_trip(value):
    assert deserialize_binary(serialize_binary(value, V01), V01) == value


def test_binary_starts_with_version_prefix():
    data = serialize_binary("response", V01)
    assert data[:4] == b"\x00\x00\x01\x00"


@pytest.mark.parametrize(
    "action",
    [
        pytest.param(
            lambda: deserialize_binary(serialize_binary("response", V01), Version(0, 2)),
            id="version-mismatch",
        ),
        pytest.param(lambda: deserialize_binary(b"\x00\x00", V01), id="too-short"),
        pytest.param(
            lambda: deserialize_binary(serialize_binary("response", V01)[:-2], V01),
            id="truncated",
        ),
        pytest.param(lambda: serialize_binary(object(), V01), id="binary-unserializable"),
        pytest.param(lambda: Version(-1, 0), id="version-out-of-range"),
        pytest.param(lambda: deserialize_json(b"{not json"), id="invalid-json"),
        pytest.param(lambda: serialize_json(object()), id="json-unserializable"),
    ],
)
def test_invalid_input_is_rejected(action):
    with pytest.raises(ValueError):
        action()


@pytest.mark.parametrize("value", ["response", 42, [1, "a"], {"a": [None, False]}])
def test_json_round_trip(value):
    assert deserialize_json(serialize_json(value)) == value


def test_json_accepts_bytes():
    assert deserialize_json(serialize_json("body").encode()) == "body"


def test_json_string_encoding():
    assert serialize_json("body") == '"body"'


def test_error_serializes_through_to_dict():
    err = ClientError(400, "invalid body")
    assert ClientError.from_dict(deserialize_json(serialize_json(err))) == err
    assert ClientError.from_dict(deserialize_binary(serialize_binary(err, V01), V01)) == err