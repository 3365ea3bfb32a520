"""HTTP API for controlling the node and inspecting the chain."""

from __future__ import annotations

import json
import logging
import re
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qsl, urljoin, urlsplit

from minicoin.blockchain import Blockchain
from minicoin.generator import TransactionGenerator
from minicoin.message import Message, MessageKind
from minicoin.miner import MinerHandle
from minicoin.server import ServerHandle

log = logging.getLogger(__name__)

_U64_MAX = 2**64 - 1
_DIGITS = re.compile(r"[0-9]+")

Response = tuple[int, str]


def _parse_u64(text: str) -> int:
    if not text:
        raise ValueError("cannot parse integer from empty string")
    digits = text[1:] if text.startswith("+") else text
    if not _DIGITS.fullmatch(digits):
        raise ValueError("invalid digit found in string")
    value = int(digits)
    if value > _U64_MAX:
        raise ValueError("number too large to fit in target type")
    return value


def _result(success: bool, message: str, status: int = 200) -> Response:
    payload = {"success": success, "message": message}
    return status, json.dumps(payload, indent=2)


def _json(value) -> Response:
    return 200, json.dumps(value, separators=(",", ":"))


class _BadRequest(Exception):
    """A request that is answered with a failure result."""


class ApiServer:
    """Serves the node's HTTP API."""

    def __init__(
        self,
        addr: tuple[str, int],
        miner: MinerHandle,
        network: ServerHandle,
        blockchain: Blockchain,
        tx_generator: TransactionGenerator,
    ) -> None:
        self.addr = tuple(addr)
        self._miner = miner
        self._network = network
        self._blockchain = blockchain
        self._tx_generator = tx_generator
        self._httpd: ThreadingHTTPServer | None = None

    def start(self) -> tuple[str, int]:
        """Serve in a background thread; returns the bound address."""
        api = self

        class Handler(BaseHTTPRequestHandler):
            def _respond(self) -> None:
                status, body = api.route(self.path)
                data = body.encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            do_GET = _respond
            do_POST = _respond
            do_PUT = _respond
            do_DELETE = _respond

            def log_message(self, format: str, *args) -> None:
                log.debug("%s " + format, self.address_string(), *args)

        class Server(ThreadingHTTPServer):
            daemon_threads = True

        if ":" in self.addr[0]:
            import socket

            Server.address_family = socket.AF_INET6

        self._httpd = Server(self.addr, Handler)
        self.addr = tuple(self._httpd.server_address[:2])
        threading.Thread(
            target=self._httpd.serve_forever, name="api-server", daemon=True
        ).start()
        log.info("API server listening at %s:%s", *self.addr)
        return self.addr

    def shutdown(self) -> None:
        """Stop serving and release the socket."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None

    @staticmethod
    def _param(params: dict[str, str], name: str, label: str) -> int:
        raw = params.get(name)
        if raw is None:
            raise _BadRequest(f"missing {name}")
        try:
            return _parse_u64(raw)
        except ValueError as exc:
            raise _BadRequest(f"error parsing {label}: {exc}") from None

    def route(self, target: str) -> Response:
        """Handle a request target; returns the status code and JSON body."""
        host, port = self.addr[0], self.addr[1]
        host_part = f"[{host}]" if ":" in host else host
        try:
            url = urlsplit(urljoin(f"http://{host_part}:{port}/", target))
        except ValueError as exc:
            return _result(False, f"error parsing url: {exc}")
        params = dict(parse_qsl(url.query, keep_blank_values=True))
        try:
            return self._dispatch(url.path, params)
        except _BadRequest as exc:
            return _result(False, str(exc))

    def _dispatch(self, path: str, params: dict[str, str]) -> Response:
        match path:
            case "/miner/start":
                self._miner.start(self._param(params, "lambda", "lambda"))
                return _result(True, "ok")
            case "/tx-generator/start":
                self._tx_generator.start(self._param(params, "theta", "theta"))
                return _result(True, "ok")
            case "/blockchain/state":
                return _json(self._state_at(self._param(params, "block", "block index")))
            case "/network/ping":
                self._network.broadcast(Message(MessageKind.PING, "Test ping"))
                return _result(True, "ok")
            case "/blockchain/longest-chain":
                with self._blockchain.lock:
                    chain = self._blockchain.all_blocks_in_longest_chain()
                return _json([str(h) for h in chain])
            case "/blockchain/longest-chain-tx":
                with self._blockchain.lock:
                    txs = self._blockchain.all_transactions_in_longest_chain()
                return _json([[str(h) for h in block] for block in txs])
            case "/blockchain/longest-chain-tx-count":
                return _result(False, "unimplemented!")
            case _:
                return _result(False, "endpoint not found", status=404)

    def _state_at(self, index: int) -> list[str]:
        with self._blockchain.lock:
            chain = self._blockchain.all_blocks_in_longest_chain()
            if index >= len(chain):
                raise _BadRequest("block index out of range")
            state = self._blockchain.states.get(chain[index])
            if state is None:
                raise _BadRequest("no state for block")
            entries = [
                f"({address}, {account.nonce}, {account.balance})"
                for address, account in state.data.items()
            ]
        return sorted(entries)