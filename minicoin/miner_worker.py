"""Takes blocks found by the miner, adds them to the chain and announces them."""

from __future__ import annotations

import logging
import queue
import threading

from minicoin.block import Block
from minicoin.blockchain import Blockchain
from minicoin.message import Message, MessageKind
from minicoin.server import ServerHandle

log = logging.getLogger(__name__)


class MinerWorker:
    """Consumes finished blocks from the miner's queue."""

    def __init__(
        self,
        server: ServerHandle,
        finished_blocks: queue.Queue,
        blockchain: Blockchain,
    ) -> None:
        self._server = server
        self._finished_blocks = finished_blocks
        self._blockchain = blockchain

    def start(self) -> threading.Thread:
        """Start the worker thread and return it."""
        thread = threading.Thread(
            target=self._worker_loop, name="miner-worker", daemon=True
        )
        thread.start()
        log.info("Miner's worker initialized")
        return thread

    def handle_block(self, block: Block) -> None:
        """Insert ``block`` into the chain and broadcast its hash."""
        with self._blockchain.lock:
            self._blockchain.insert(block)
            tip = self._blockchain.tip
        log.info("miner's worker inserted block, tip is now %r", tip)
        self._server.broadcast(Message(MessageKind.NEW_BLOCK_HASHES, (block.hash(),)))

    def _worker_loop(self) -> None:
        while True:
            block = self._finished_blocks.get()
            try:
                self.handle_block(block)
            except KeyError as exc:
                log.error("cannot insert mined block: %s", exc)