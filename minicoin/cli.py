"""Command-line entry point that starts a full node."""

from __future__ import annotations

import argparse
import ipaddress
import logging
import queue
import re
import sys
import threading
import time
from collections.abc import Sequence

from minicoin import miner
from minicoin.api import ApiServer
from minicoin.blockchain import Blockchain
from minicoin.generator import TransactionGenerator
from minicoin.mempool import Mempool
from minicoin.miner_worker import MinerWorker
from minicoin.network_worker import NetworkWorker
from minicoin.server import CONTROL_CAPACITY, ServerHandle, new_server

log = logging.getLogger(__name__)

_PORT = re.compile(r"[0-9]+")
_COUNT = re.compile(r"\+?[0-9]+")
_LEVELS = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="minicoin", description="Bitcoin client")
    parser.add_argument("--version", action="version", version="%(prog)s 0.1")
    parser.add_argument(
        "-v", dest="verbose", action="count", default=0,
        help="Increases the verbosity of logging",
    )
    parser.add_argument(
        "--p2p", dest="peer_addr", metavar="ADDR", default="127.0.0.1:6000",
        help="Sets the IP address and the port of the P2P server",
    )
    parser.add_argument(
        "--api", dest="api_addr", metavar="ADDR", default="127.0.0.1:7000",
        help="Sets the IP address and the port of the API server",
    )
    parser.add_argument(
        "-c", "--connect", dest="known_peer", metavar="PEER", action="extend",
        nargs="+", default=[], help="Sets the peers to connect to at start",
    )
    parser.add_argument(
        "--p2p-workers", dest="p2p_workers", metavar="INT", default="4",
        help="Sets the number of worker threads for P2P server",
    )
    return parser.parse_args(argv)


def parse_socket_addr(text: str) -> tuple[str, int]:
    """Parse ``ip:port`` or ``[ipv6]:port``; host names are not accepted."""
    error = ValueError("invalid socket address syntax")
    if text.startswith("["):
        host, sep, port = text[1:].partition("]:")
        parse_ip = ipaddress.IPv6Address
    else:
        host, sep, port = text.rpartition(":")
        parse_ip = ipaddress.IPv4Address
    if not sep or not _PORT.fullmatch(port) or int(port) > 0xFFFF:
        raise error
    try:
        ip = parse_ip(host)
    except ValueError:
        raise error from None
    return str(ip), int(port)


def _parse_count(text: str) -> int:
    if not text:
        raise ValueError("cannot parse integer from empty string")
    if not _COUNT.fullmatch(text):
        raise ValueError("invalid digit found in string")
    return int(text)


def _init_logging(verbosity: int) -> None:
    level = _LEVELS[min(verbosity, len(_LEVELS) - 1)]
    logging.basicConfig(
        level=level, stream=sys.stderr, format="%(levelname)s - %(message)s"
    )


def _connect_known_peers(server: ServerHandle, peers: list[str]) -> None:
    for peer in peers:
        try:
            addr = parse_socket_addr(peer)
        except ValueError as exc:
            log.error("Error parsing peer address %s: %s", peer, exc)
            continue
        while True:
            try:
                server.connect(addr)
            except OSError as exc:
                log.error(
                    "Error connecting to peer %s:%s, retrying in one second: %s",
                    *addr, exc,
                )
                time.sleep(1)
                continue
            log.info("Connected to outgoing peer %s:%s", *addr)
            break


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _init_logging(args.verbose)

    try:
        p2p_addr = parse_socket_addr(args.peer_addr)
    except ValueError as exc:
        log.error("Error parsing P2P server address: %s", exc)
        return 1
    try:
        api_addr = parse_socket_addr(args.api_addr)
    except ValueError as exc:
        log.error("Error parsing API server address: %s", exc)
        return 1
    try:
        p2p_workers = _parse_count(args.p2p_workers)
    except ValueError as exc:
        log.error("Error parsing P2P workers: %s", exc)
        return 1

    blockchain = Blockchain()
    mempool = Mempool()

    msg_queue: queue.Queue = queue.Queue(maxsize=CONTROL_CAPACITY)
    server_ctx, server = new_server(p2p_addr, msg_queue)
    server_ctx.start()

    NetworkWorker(p2p_workers, msg_queue, server, blockchain, mempool).start()

    miner_ctx, miner_handle, finished_blocks = miner.new(blockchain, mempool)
    miner_worker = MinerWorker(server, finished_blocks, blockchain)
    miner_ctx.start()
    miner_worker.start()

    tx_generator = TransactionGenerator(server, mempool, blockchain)

    if args.known_peer:
        threading.Thread(
            target=_connect_known_peers,
            args=(server, list(args.known_peer)),
            name="peer-connector",
            daemon=True,
        ).start()

    ApiServer(api_addr, miner_handle, server, blockchain, tx_generator).start()

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())