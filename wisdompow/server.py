"""TCP server that answers framed requests, one thread per request."""

from __future__ import annotations

import argparse
import contextlib
import logging
import socket
import threading
from typing import BinaryIO, Sequence

from wisdompow.config import ConfigError, ServerConfig, load_config
from wisdompow.handler import RequestHandler
from wisdompow.logsetup import init_logging
from wisdompow.pow import PowService
from wisdompow.protocol import Request, read_request, write_response

logger = logging.getLogger(__name__)

_ACCEPT_POLL = 0.2


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid address {address!r}")
    return host.strip("[]"), int(port)


def _peer_name(sock: socket.socket) -> str:
    try:
        peer = sock.getpeername()
    except OSError:
        return "unknown"
    if isinstance(peer, tuple):
        return f"{peer[0]}:{peer[1]}"
    return str(peer) or "local"


class ConnectionHandler:
    """Reads requests from one client and answers each in its own thread."""

    def __init__(self, sock: socket.socket, request_handler: RequestHandler) -> None:
        self._sock = sock
        self._request_handler = request_handler
        self._write_lock = threading.Lock()
        self._workers_lock = threading.Lock()
        self._workers: set[threading.Thread] = set()

    def run(self) -> None:
        """Serve the connection until the client goes away, then close it."""
        address = _peer_name(self._sock)
        reader = self._sock.makefile("rb")
        writer = self._sock.makefile("wb")
        try:
            while True:
                try:
                    request = read_request(reader)
                except (EOFError, OSError, ValueError) as exc:
                    logger.info("Client disconnected address=%s error=%s", address, exc)
                    return
                logger.info(
                    "Received request address=%s id=%d method=%s",
                    address,
                    request.id,
                    request.method,
                )
                worker = threading.Thread(
                    target=self._answer, args=(request, address, writer), daemon=True
                )
                with self._workers_lock:
                    self._workers.add(worker)
                worker.start()
        finally:
            with self._workers_lock:
                pending = list(self._workers)
            for worker in pending:
                worker.join()
            for closable in (reader, writer, self._sock):
                with contextlib.suppress(OSError):
                    closable.close()

    def _answer(self, request: Request, address: str, writer: BinaryIO) -> None:
        try:
            response = self._request_handler.handle_request(request)
            with self._write_lock:
                try:
                    write_response(writer, response)
                except (OSError, ValueError) as exc:
                    logger.error(
                        "Failed to send response address=%s id=%d error=%s",
                        address,
                        request.id,
                        exc,
                    )
                    return
            logger.info("Sent response address=%s id=%d", address, request.id)
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())


class Server:
    """Listens on the configured address and serves every client that connects."""

    def __init__(self, config: ServerConfig) -> None:
        self._address = config.addr
        self._stopping = threading.Event()

    def start(self) -> None:
        """Accept connections until stop() is called; raises if the address cannot be used."""
        host, port = _split_address(self._address)
        self._stopping.clear()
        with socket.create_server((host, port)) as listener:
            listener.settimeout(_ACCEPT_POLL)
            logger.info("Server started address=%s", self._address)
            pow_service = PowService()
            pow_service.start_cleanup()
            request_handler = RequestHandler(pow_service)
            try:
                while not self._stopping.is_set():
                    try:
                        conn, _ = listener.accept()
                    except TimeoutError:
                        continue
                    except OSError as exc:
                        if self._stopping.is_set():
                            break
                        logger.error("Failed to accept connection: %s", exc)
                        continue
                    conn.settimeout(None)
                    logger.info("New client connected address=%s", _peer_name(conn))
                    connection = ConnectionHandler(conn, request_handler)
                    threading.Thread(target=connection.run, daemon=True).start()
            finally:
                pow_service.stop_cleanup()
        logger.info("Server closed address=%s", self._address)

    def stop(self) -> None:
        """Ask a running start() to close the listener and return."""
        self._stopping.set()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server with settings from config.yaml and the environment."""
    parser = argparse.ArgumentParser(
        prog="wisdompow-server",
        description="Serve quotes to clients that solve a proof-of-work challenge.",
    )
    parser.parse_args(argv)
    flush = init_logging()
    try:
        try:
            config = load_config(ServerConfig)
        except ConfigError as exc:
            logger.critical("Invalid configuration: %s", exc)
            return 1
        server = Server(config)
        logger.info("Starting TCP server address=%s", config.addr)
        try:
            server.start()
        except KeyboardInterrupt:
            server.stop()
            logger.info("Server closed")
        except (OSError, ValueError) as exc:
            logger.critical("Failed to start server: %s", exc)
            return 1
        return 0
    finally:
        flush()