"""Handles messages arriving from peers."""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque

from minicoin.block import Block
from minicoin.blockchain import Blockchain
from minicoin.codec import DecodeError
from minicoin.hash import H256
from minicoin.mempool import Mempool
from minicoin.message import Message, MessageKind
from minicoin.peer import PeerHandle
from minicoin.server import ServerHandle
from minicoin.transaction import SignedTransaction, verify

log = logging.getLogger(__name__)


class NetworkWorker:
    """A pool of threads that read ``(payload, peer)`` pairs and react to them.

    Putting ``None`` on the channel stops one worker thread.
    """

    def __init__(
        self,
        num_worker: int,
        msg_chan: queue.Queue,
        server: ServerHandle,
        blockchain: Blockchain,
        mempool: Mempool,
    ) -> None:
        if num_worker < 0:
            raise ValueError(f"number of workers must not be negative: {num_worker}")
        self._num_worker = num_worker
        self._msg_chan = msg_chan
        self._server = server
        self._blockchain = blockchain
        self._mempool = mempool

    def start(self) -> list[threading.Thread]:
        """Start the worker threads and return them."""
        threads = [
            threading.Thread(
                target=self._worker_loop, args=(i,), name=f"network-worker-{i}", daemon=True
            )
            for i in range(self._num_worker)
        ]
        for thread in threads:
            thread.start()
        return threads

    def _worker_loop(self, index: int) -> None:
        while True:
            item = self._msg_chan.get()
            if item is None:
                break
            payload, peer = item
            try:
                self.handle_message(payload, peer)
            except DecodeError as exc:
                log.error("undecodable message from %s: %s", peer.addr, exc)
        log.warning("Worker thread %d exited", index)

    def handle_message(self, payload: bytes, peer: PeerHandle) -> None:
        """Decode one message from ``peer`` and act on it."""
        message = Message.decode(payload)
        kind = message.kind
        log.debug("%s: %r", kind.name, message.payload)
        match kind:
            case MessageKind.PING:
                peer.write(Message(MessageKind.PONG, message.payload))
            case MessageKind.PONG:
                pass
            case MessageKind.NEW_BLOCK_HASHES:
                if message.payload:
                    peer.write(Message(MessageKind.GET_BLOCKS, message.payload))
            case MessageKind.GET_BLOCKS:
                self._on_get_blocks(message.payload, peer)
            case MessageKind.BLOCKS:
                self._on_blocks(message.payload, peer)
            case MessageKind.NEW_TRANSACTION_HASHES:
                self._on_new_transaction_hashes(message.payload, peer)
            case MessageKind.GET_TRANSACTIONS:
                self._on_get_transactions(message.payload, peer)
            case MessageKind.TRANSACTIONS:
                self._on_transactions(message.payload)

    def _on_get_blocks(self, hashes: tuple[H256, ...], peer: PeerHandle) -> None:
        with self._blockchain.lock:
            found = [
                self._blockchain.blocks[h] for h in hashes if h in self._blockchain.blocks
            ]
        if found:
            peer.write(Message(MessageKind.BLOCKS, found))

    def _accept(self, block: Block) -> bool:
        """Validate ``block`` against its parent's state and add it to the chain.

        The caller holds the blockchain lock.
        """
        parent_state = self._blockchain.states.get(block.parent)
        if parent_state is None:
            return False
        state = parent_state.copy()
        if not all(state.is_transaction_valid(tx) for tx in block.data):
            return False
        for tx in block.data:
            state.process(tx)
        block_hash = block.hash()
        self._blockchain.states[block_hash] = state
        with self._mempool.lock:
            for tx in block.data:
                self._mempool.discard(tx.hash())
        self._blockchain.insert(block)
        return True

    def _on_blocks(self, blocks: tuple[Block, ...], peer: PeerHandle) -> None:
        new_blocks: list[H256] = []
        needed_parents: list[H256] = []
        orphans: dict[H256, list[Block]] = {}
        with self._blockchain.lock:
            for block in blocks:
                block_hash = block.hash()
                if block_hash > block.difficulty:
                    continue
                if block_hash in self._blockchain.blocks:
                    continue
                parent = self._blockchain.blocks.get(block.parent)
                if parent is None:
                    needed_parents.append(block.parent)
                    orphans.setdefault(block.parent, []).append(block)
                    continue
                if block.difficulty != parent.difficulty:
                    continue
                if not self._accept(block):
                    continue
                new_blocks.append(block_hash)
                pending = deque([block_hash])
                while pending:
                    for child in orphans.pop(pending.popleft(), []):
                        if self._accept(child):
                            child_hash = child.hash()
                            new_blocks.append(child_hash)
                            pending.append(child_hash)
        if new_blocks:
            self._server.broadcast(Message(MessageKind.NEW_BLOCK_HASHES, new_blocks))
        if needed_parents:
            peer.write(Message(MessageKind.GET_BLOCKS, needed_parents))

    def _on_new_transaction_hashes(
        self, hashes: tuple[H256, ...], peer: PeerHandle
    ) -> None:
        with self._mempool.lock:
            needed = [h for h in hashes if h not in self._mempool]
        if needed:
            peer.write(Message(MessageKind.GET_TRANSACTIONS, needed))

    def _on_get_transactions(self, hashes: tuple[H256, ...], peer: PeerHandle) -> None:
        with self._mempool.lock:
            found = [tx for tx in map(self._mempool.get, hashes) if tx is not None]
        if found:
            peer.write(Message(MessageKind.TRANSACTIONS, found))

    def _on_transactions(self, txs: tuple[SignedTransaction, ...]) -> None:
        new_txs: list[H256] = []
        for tx in txs:
            if not verify(tx.transaction, tx.public_key, tx.signature):
                continue
            tx_hash = tx.hash()
            with self._mempool.lock:
                if tx_hash in self._mempool:
                    continue
                self._mempool.add(tx)
            new_txs.append(tx_hash)
        if new_txs:
            self._server.broadcast(Message(MessageKind.NEW_TRANSACTION_HASHES, new_txs))