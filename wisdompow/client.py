"""Client that requests challenges, solves them and fetches quotes."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from typing import BinaryIO, Callable, Sequence, TextIO

from wisdompow.config import ClientConfig, ConfigError, load_config
from wisdompow.logsetup import init_logging
from wisdompow.pow import solve_challenge
from wisdompow.protocol import (
    Auth,
    Request,
    Response,
    new_request,
    read_response,
    write_request,
)

logger = logging.getLogger(__name__)

ECHO_MESSAGE = "Hello, world!"
PROMPT = "Enter command: "


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid address {address!r}")
    return host.strip("[]") or "localhost", int(port)


def connect(config: ClientConfig) -> socket.socket:
    """Open a TCP connection to the configured server."""
    sock = socket.create_connection(_split_address(config.addr))
    logger.info("Connected to server address=%s", config.addr)
    return sock


class Cli:
    """Issues commands to the server over a framed byte stream."""

    def __init__(self, stream: BinaryIO, config: ClientConfig) -> None:
        self._stream = stream
        self._config = config
        self._id = 0
        self._commands: dict[str, Callable[[], object]] = {
            "error": self.on_error,
            "echo": self.on_echo,
            "challenge": self.on_challenge,
            "quote": self.on_quote,
        }

    def next_id(self) -> int:
        """Return the next request id, starting from 1."""
        self._id += 1
        return self._id

    def handle_response(self) -> Response:
        """Read and log one response; raises if none can be read."""
        try:
            response = read_response(self._stream)
        except (OSError, EOFError, ValueError) as exc:
            logger.error("Failed to read response: %s", exc)
            raise
        if response.error is not None:
            logger.warning(
                "Received error response id=%d code=%d message=%s",
                response.id,
                response.error.code,
                response.error.message,
            )
        else:
            logger.info("Received success response id=%d result=%r", response.id, response.result)
        return response

    def run(self, input_stream: TextIO | None = None, output: TextIO | None = None) -> None:
        """Prompt for commands until "exit"; raises EOFError when the input ends."""
        source = sys.stdin if input_stream is None else input_stream
        sink = sys.stdout if output is None else output
        while True:
            sink.write(PROMPT)
            sink.flush()
            line = source.readline()
            if not line.endswith("\n"):
                raise EOFError("input closed")
            command = line.strip()
            if command == "exit":
                return
            action = self._commands.get(command)
            if action is not None:
                action()

    def _send(self, request: Request, what: str) -> bool:
        logger.info("Sending %s request", what)
        try:
            write_request(self._stream, request)
        except (OSError, ValueError, TypeError) as exc:
            logger.error("Failed to send %s request: %s", what, exc)
            return False
        logger.info("%s request sent successfully", what.capitalize())
        return True

    def _receive(self) -> Response | None:
        try:
            return self.handle_response()
        except (OSError, EOFError, ValueError):
            return None

    def on_error(self) -> Response | None:
        """Ask for the sample error response."""
        if not self._send(Request(id=self.next_id(), method="error"), "ping"):
            return None
        return self._receive()

    def on_echo(self) -> Response | None:
        """Send a greeting and return the echoed response."""
        request = new_request(self.next_id(), "echo", ECHO_MESSAGE)
        if not self._send(request, "echo"):
            return None
        return self._receive()

    def on_challenge(self) -> tuple[str, int] | None:
        """Request a challenge and return its id and difficulty."""
        if not self._send(Request(id=self.next_id(), method="challenge"), "pow"):
            return None
        response = self._receive()
        if response is None:
            logger.error("Failed to handle pow response")
            return None
        result = response.result
        challenge_id = result.get("id", "") if isinstance(result, dict) else None
        difficulty = result.get("difficulty", 0) if isinstance(result, dict) else None
        if (
            not isinstance(challenge_id, str)
            or isinstance(difficulty, bool)
            or not isinstance(difficulty, int)
        ):
            logger.error("Failed to unmarshal pow result: %r", result)
            return None
        logger.info("Pow result received challenge=%s difficulty=%d", challenge_id, difficulty)
        return challenge_id, difficulty

    def on_quote(self) -> Response | None:
        """Solve a fresh challenge and use the solution to fetch a quote."""
        challenge = self.on_challenge()
        if challenge is None:
            return None
        challenge_id, difficulty = challenge
        try:
            nonce = solve_challenge(challenge_id, difficulty)
        except RuntimeError as exc:
            logger.error("Failed to solve challenge: %s", exc)
            return None
        logger.info("Challenge solved nonce=%d", nonce)
        if self._config.send_wrong_challenge:
            nonce += 1
        request = Request(
            id=self.next_id(),
            method="quote",
            auth=Auth(challenge_id=challenge_id, nonce=nonce),
        )
        if not self._send(request, "quote"):
            return None
        return self._receive()


def run_cli(stream: BinaryIO, config: ClientConfig) -> None:
    """Run the interactive prompt, or fetch one quote when not interactive."""
    cli = Cli(stream, config)
    if config.is_interactive:
        cli.run()
    else:
        cli.on_quote()


def main(argv: Sequence[str] | None = None) -> int:
    """Connect to the configured server and run the client."""
    parser = argparse.ArgumentParser(
        prog="wisdompow-client",
        description="Solve a proof-of-work challenge and fetch a quote.",
    )
    parser.parse_args(argv)
    flush = init_logging()
    try:
        try:
            config = load_config(ClientConfig)
        except ConfigError as exc:
            logger.critical("Invalid configuration: %s", exc)
            return 1
        try:
            sock = connect(config)
        except (OSError, ValueError) as exc:
            logger.critical("Failed to connect to server: %s", exc)
            return 1
        with sock, sock.makefile("rwb") as stream:
            try:
                run_cli(stream, config)
            except (EOFError, OSError, KeyboardInterrupt) as exc:
                logger.error("CLI closed: %s", exc)
        logger.info("CLI closed")
        return 0
    finally:
        flush()