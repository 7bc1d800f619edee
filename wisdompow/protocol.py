"""Length-prefixed JSON requests and responses exchanged over a byte stream."""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from typing import Any, BinaryIO

MAX_MESSAGE_SIZE = 1024 * 1024

_LENGTH = struct.Struct(">I")


class MessageTooLargeError(ValueError):
    """Raised when a frame announces a body larger than the allowed size."""


@dataclass(frozen=True)
class Auth:
    """Proof-of-work solution attached to a request."""

    challenge_id: str
    nonce: int


@dataclass(frozen=True)
class Request:
    """A method call sent by the client."""

    id: int
    method: str
    params: Any = None
    auth: Auth | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "method": self.method, "params": self.params}
        if self.auth is not None:
            data["auth"] = {"challenge_id": self.auth.challenge_id, "nonce": self.auth.nonce}
        return data


@dataclass(frozen=True)
class ResponseError:
    """Error part of a failed response."""

    code: int
    message: str


@dataclass(frozen=True)
class Response:
    """The server's answer to a request, carrying either a result or an error."""

    id: int
    result: Any = None
    error: ResponseError | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = {"code": self.error.code, "message": self.error.message}
        return data


def _default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _json_value(value: Any) -> Any:
    """Return value as it would come back after a JSON round trip."""
    return json.loads(json.dumps(value, default=_default))


def new_request(request_id: int, method: str, params: Any = None) -> Request:
    """Build a request whose params are converted to plain JSON values."""
    return Request(id=request_id, method=method, params=_json_value(params))


def new_response(request_id: int, result: Any) -> Response:
    """Build a successful response whose result is converted to plain JSON values."""
    return Response(id=request_id, result=_json_value(result))


def new_error_response(request_id: int, code: int, message: str) -> Response:
    """Build a response that reports an error."""
    return Response(id=request_id, error=ResponseError(code=code, message=message))


def _write_frame(stream: BinaryIO, payload: dict[str, Any]) -> None:
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=_default).encode(
        "utf-8"
    )
    if len(data) > 0xFFFFFFFF:
        raise MessageTooLargeError("message too large")
    stream.write(_LENGTH.pack(len(data)) + data)
    flush = getattr(stream, "flush", None)
    if callable(flush):
        flush()


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    buffer = bytearray()
    while len(buffer) < size:
        chunk = stream.read(size - len(buffer))
        if not chunk:
            raise EOFError("unexpected end of stream")
        buffer += chunk
    return bytes(buffer)


def _read_frame(stream: BinaryIO) -> dict[str, Any]:
    (length,) = _LENGTH.unpack(_read_exact(stream, _LENGTH.size))
    if length > MAX_MESSAGE_SIZE:
        raise MessageTooLargeError("message too large")
    data = json.loads(_read_exact(stream, length))
    if not isinstance(data, dict):
        raise ValueError("message is not a JSON object")
    return data


def _int_field(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    return value


def _str_field(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _object_field(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"field {key!r} must be an object")
    return value


def write_request(stream: BinaryIO, request: Request) -> None:
    """Write one framed request to the stream."""
    _write_frame(stream, request.to_dict())


def write_response(stream: BinaryIO, response: Response) -> None:
    """Write one framed response to the stream."""
    _write_frame(stream, response.to_dict())


def read_request(stream: BinaryIO) -> Request:
    """Read one framed request; raises EOFError when the stream ends."""
    data = _read_frame(stream)
    auth_data = _object_field(data, "auth")
    auth = None
    if auth_data is not None:
        auth = Auth(
            challenge_id=_str_field(auth_data, "challenge_id"),
            nonce=_int_field(auth_data, "nonce"),
        )
    return Request(
        id=_int_field(data, "id"),
        method=_str_field(data, "method"),
        params=data.get("params"),
        auth=auth,
    )


def read_response(stream: BinaryIO) -> Response:
    """Read one framed response; raises EOFError when the stream ends."""
    data = _read_frame(stream)
    error_data = _object_field(data, "error")
    error = None
    if error_data is not None:
        error = ResponseError(
            code=_int_field(error_data, "code"),
            message=_str_field(error_data, "message"),
        )
    return Response(id=_int_field(data, "id"), result=data.get("result"), error=error)