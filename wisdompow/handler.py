"""Dispatch of protocol requests to the server's method handlers."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from wisdompow.pow import PowService
from wisdompow.protocol import Request, Response, new_error_response, new_response
from wisdompow.quotes import get_random_quote

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Response]


class _ChallengeGenerator(Protocol):
    def generate_challenge(self) -> Any: ...


class _ChallengeVerifier(Protocol):
    def verify_solution(self, challenge_id: str, nonce: int) -> bool: ...


class _PowBackend(_ChallengeGenerator, _ChallengeVerifier, Protocol):
    pass


def echo_handler(request: Request) -> Response:
    """Answer with the request's own params."""
    return Response(id=request.id, result=request.params)


def error_handler(request: Request) -> Response:
    """Answer with a sample error."""
    return new_error_response(request.id, 400, "example error response")


def quote_handler(request: Request) -> Response:
    """Answer with a random quote."""
    try:
        return new_response(request.id, get_random_quote())
    except (TypeError, ValueError):
        return new_error_response(request.id, 500, "Failed to create response")


def generate_challenge_handler(generator: _ChallengeGenerator) -> Handler:
    """Build a handler that issues a new challenge from generator."""

    def handle(request: Request) -> Response:
        try:
            challenge = generator.generate_challenge()
        except Exception as exc:
            logger.error("Failed to generate challenge: %s", exc)
            return new_error_response(request.id, 500, "Failed to generate challenge")
        try:
            return new_response(request.id, challenge)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to create response: %s", exc)
            return new_error_response(request.id, 500, "Failed to create response")

    return handle


def verify_challenge_middleware(next_handler: Handler, verifier: _ChallengeVerifier) -> Handler:
    """Wrap next_handler so that it runs only for requests carrying a valid solution."""

    def handle(request: Request) -> Response:
        if request.auth is None:
            return new_error_response(request.id, 401, "Unauthorized")
        try:
            solved = verifier.verify_solution(request.auth.challenge_id, request.auth.nonce)
        except Exception as exc:
            logger.error("Failed to verify solution: %s", exc)
            return new_error_response(request.id, 500, "Failed to verify solution")
        if not solved:
            return new_error_response(request.id, 401, "Unauthorized")
        return next_handler(request)

    return handle


class RequestHandler:
    """Routes requests by method name."""

    def __init__(self, pow_service: _PowBackend | None = None) -> None:
        if pow_service is None:
            service = PowService()
            service.start_cleanup()
            pow_service = service
        self._handlers: dict[str, Handler] = {
            "challenge": generate_challenge_handler(pow_service),
            "quote": verify_challenge_middleware(quote_handler, pow_service),
            "echo": echo_handler,
            "error": error_handler,
        }

    def handle_request(self, request: Request) -> Response:
        """Run the handler for the request's method, or answer 404."""
        handler = self._handlers.get(request.method)
        if handler is None:
            return new_error_response(request.id, 404, "Method not found")
        return handler(request)