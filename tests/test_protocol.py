import io
import json
import struct

import pytest

from wisdompow.protocol import (
    MAX_MESSAGE_SIZE,
    Auth,
    MessageTooLargeError,
    Request,
    Response,
    ResponseError,
    new_error_response,
    new_request,
    new_response,
    read_request,
    read_response,
    write_request,
    write_response,
)


def _frame(body: bytes) -> bytes:
    return struct.pack(">I", len(body)) + body


def test_request_round_trip_with_auth():
    request = Request(id=7, method="quote", params={"a": [1, 2]}, auth=Auth("abc", 42))
    buf = io.BytesIO()
    write_request(buf, request)
    buf.seek(0)
    assert read_request(buf) == request


def test_response_round_trip_with_error():
    response = new_error_response(3, 401, "Unauthorized")
    buf = io.BytesIO()
    write_response(buf, response)
    buf.seek(0)
    decoded = read_response(buf)
    assert decoded == response
    assert decoded.error == ResponseError(401, "Unauthorized")


def test_response_round_trip_with_result():
    response = new_response(5, "example1")
    buf = io.BytesIO()
    write_response(buf, response)
    buf.seek(0)
    assert read_response(buf) == Response(id=5, result="example1")


def test_wire_format_is_big_endian_length_and_json():
    buf = io.BytesIO()
    write_response(buf, new_error_response(1, 404, "Method not found"))
    raw = buf.getvalue()
    assert raw[:4] == struct.pack(">I", len(raw) - 4)
    assert json.loads(raw[4:]) == {"id": 1, "error": {"code": 404, "message": "Method not found"}}


def test_request_without_auth_omits_auth_and_keeps_null_params():
    data = Request(id=1, method="challenge").to_dict()
    assert data == {"id": 1, "method": "challenge", "params": None}


def test_response_to_dict_omits_missing_parts():
    assert Response(id=2).to_dict() == {"id": 2}


def test_multiple_messages_in_sequence():
    buf = io.BytesIO()
    for i in range(1, 4):
        write_request(buf, new_request(i, "echo", f"msg{i}"))
    buf.seek(0)
    decoded = [read_request(buf) for _ in range(3)]
    assert [r.id for r in decoded] == [1, 2, 3]
    assert [r.params for r in decoded] == ["msg1", "msg2", "msg3"]


def test_new_request_normalises_params():
    assert new_request(1, "echo", ("x", 1)).params == ["x", 1]


def test_new_request_rejects_unserialisable_params():
    with pytest.raises(TypeError):
        new_request(1, "echo", object())


def test_new_response_uses_to_dict():
    class Thing:
        def to_dict(self):
            return {"k": "v"}

    assert new_response(9, Thing()).result == {"k": "v"}


def test_read_from_empty_stream_raises_eof():
    with pytest.raises(EOFError):
        read_request(io.BytesIO(b""))


def test_truncated_body_raises_eof():
    raw = _frame(b'{"id":1,"method":"echo"}')[:-3]
    with pytest.raises(EOFError):
        read_request(io.BytesIO(raw))


def test_too_large_message_is_rejected():
    raw = struct.pack(">I", MAX_MESSAGE_SIZE + 1)
    with pytest.raises(MessageTooLargeError):
        read_response(io.BytesIO(raw))


def test_invalid_json_raises_value_error():
    with pytest.raises(ValueError):
        read_request(io.BytesIO(_frame(b"{not json")))


def test_non_object_message_raises_value_error():
    with pytest.raises(ValueError):
        read_response(io.BytesIO(_frame(b"[1,2]")))


def test_wrong_field_type_raises_value_error():
    with pytest.raises(ValueError):
        read_request(io.BytesIO(_frame(b'{"id":"one","method":"echo"}')))


def test_missing_fields_take_zero_values():
    request = read_request(io.BytesIO(_frame(b"{}")))
    assert request == Request(id=0, method="", params=None, auth=None)