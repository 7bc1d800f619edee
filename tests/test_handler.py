from datetime import datetime, timedelta, timezone

import pytest

from wisdompow.handler import (
    RequestHandler,
    echo_handler,
    error_handler,
    generate_challenge_handler,
    quote_handler,
    verify_challenge_middleware,
)
from wisdompow.pow import Challenge, ChallengeNotFoundError, PowService
from wisdompow.protocol import Auth, Request, Response, ResponseError
from wisdompow.quotes import QUOTES


class _Generator:
    def __init__(self, challenge=None, error=None):
        self.challenge = challenge
        self.error = error

    def generate_challenge(self):
        if self.error is not None:
            raise self.error
        return self.challenge


class _Verifier:
    def __init__(self, outcome=True, error=None):
        self.outcome = outcome
        self.error = error
        self.calls = []

    def verify_solution(self, challenge_id, nonce):
        self.calls.append((challenge_id, nonce))
        if self.error is not None:
            raise self.error
        return self.outcome


def _passed(request):
    return Response(id=request.id, result="passed")


def test_echo_handler_returns_params():
    response = echo_handler(Request(id=7, method="echo", params="Hello, world!"))
    assert response == Response(id=7, result="Hello, world!")


def test_error_handler_returns_sample_error():
    response = error_handler(Request(id=3, method="error"))
    assert response == Response(id=3, error=ResponseError(400, "example error response"))


def test_quote_handler_returns_known_quote():
    response = quote_handler(Request(id=5, method="quote"))
    assert response.id == 5
    assert response.error is None
    assert response.result in QUOTES


def test_generate_challenge_handler_serialises_challenge():
    expires = datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    challenge = Challenge(id="abc", difficulty=6, expires_at=expires)
    response = generate_challenge_handler(_Generator(challenge))(Request(id=1, method="challenge"))
    assert response.error is None
    assert response.result == challenge.to_dict()


def test_generate_challenge_handler_reports_failure():
    handler = generate_challenge_handler(_Generator(error=OSError("no entropy")))
    response = handler(Request(id=2, method="challenge"))
    assert response.error == ResponseError(500, "Failed to generate challenge")


def test_middleware_rejects_missing_auth():
    verifier = _Verifier()
    response = verify_challenge_middleware(_passed, verifier)(Request(id=1, method="quote"))
    assert response.error == ResponseError(401, "Unauthorized")
    assert verifier.calls == []


def test_middleware_rejects_wrong_solution():
    handler = verify_challenge_middleware(_passed, _Verifier(outcome=False))
    response = handler(Request(id=1, method="quote", auth=Auth("abc", 4)))
    assert response.error == ResponseError(401, "Unauthorized")


def test_middleware_reports_verification_error():
    handler = verify_challenge_middleware(_passed, _Verifier(error=ChallengeNotFoundError("gone")))
    response = handler(Request(id=1, method="quote", auth=Auth("abc", 4)))
    assert response.error == ResponseError(500, "Failed to verify solution")


def test_middleware_passes_valid_solution_through():
    verifier = _Verifier(outcome=True)
    handler = verify_challenge_middleware(_passed, verifier)
    response = handler(Request(id=9, method="quote", auth=Auth("abc", 4)))
    assert response == Response(id=9, result="passed")
    assert verifier.calls == [("abc", 4)]


def test_unknown_method_is_not_found():
    response = RequestHandler().handle_request(Request(id=11, method="nope"))
    assert response == Response(id=11, error=ResponseError(404, "Method not found"))


@pytest.mark.parametrize("method", ["echo", "error"])
def test_routes_simple_methods(method):
    request = Request(id=4, method=method, params=[1, 2])
    expected = echo_handler(request) if method == "echo" else error_handler(request)
    assert RequestHandler(PowService()).handle_request(request) == expected


def test_quote_requires_solved_challenge_and_consumes_it():
    handler = RequestHandler(PowService(difficulty=0))
    issued = handler.handle_request(Request(id=1, method="challenge"))
    challenge_id = issued.result["id"]
    assert issued.result["difficulty"] == 0

    quote = handler.handle_request(Request(id=2, method="quote", auth=Auth(challenge_id, 1)))
    assert quote.error is None
    assert quote.result in QUOTES

    again = handler.handle_request(Request(id=3, method="quote", auth=Auth(challenge_id, 1)))
    assert again.error == ResponseError(500, "Failed to verify solution")


def test_quote_without_auth_is_unauthorized():
    stub = _Verifier()
    stub.generate_challenge = lambda: Challenge(
        "x", 0, datetime.now(timezone.utc) + timedelta(seconds=30)
    )
    response = RequestHandler(stub).handle_request(Request(id=8, method="quote"))
    assert response.error == ResponseError(401, "Unauthorized")