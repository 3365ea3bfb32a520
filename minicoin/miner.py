"""Block miner: gathers valid mempool transactions and searches for a block."""

from __future__ import annotations

import enum
import logging
import queue
import threading
import time
from dataclasses import dataclass

from minicoin.blockchain import Blockchain
from minicoin.block import generate_block
from minicoin.hash import H256
from minicoin.mempool import Mempool
from minicoin.transaction import SignedTransaction

log = logging.getLogger(__name__)

MAX_BLOCK_TRANSACTIONS = 50


class _SignalKind(enum.Enum):
    START = "start"
    UPDATE = "update"
    EXIT = "exit"


@dataclass(frozen=True)
class _Signal:
    kind: _SignalKind
    lam: int = 0


class _Mode(enum.Enum):
    PAUSED = "paused"
    RUN = "run"
    SHUTDOWN = "shutdown"


class MinerHandle:
    """Sends control commands to the miner thread."""

    def __init__(self, control: queue.Queue) -> None:
        self._control = control

    def start(self, lam: int) -> None:
        """Run continuously, sleeping ``lam`` microseconds between attempts."""
        if lam < 0:
            raise ValueError(f"lambda must not be negative: {lam}")
        self._control.put(_Signal(_SignalKind.START, lam))

    def update(self) -> None:
        self._control.put(_Signal(_SignalKind.UPDATE))

    def exit(self) -> None:
        self._control.put(_Signal(_SignalKind.EXIT))


class MinerContext:
    """The mining loop and the state it works on."""

    def __init__(
        self,
        control: queue.Queue,
        finished_blocks: queue.Queue,
        blockchain: Blockchain,
        mempool: Mempool,
    ) -> None:
        self._control = control
        self._finished_blocks = finished_blocks
        self._blockchain = blockchain
        self._mempool = mempool
        self._mode = _Mode.PAUSED
        self._lam = 0

    def start(self) -> threading.Thread:
        """Start the miner thread in paused mode and return it."""
        thread = threading.Thread(target=self._miner_loop, name="miner", daemon=True)
        thread.start()
        log.info("Miner initialized into paused mode")
        return thread

    def _apply(self, signal: _Signal) -> None:
        if signal.kind is _SignalKind.EXIT:
            log.info("Miner shutting down")
            self._mode = _Mode.SHUTDOWN
        elif signal.kind is _SignalKind.START:
            log.info("Miner starting in continuous mode with lambda %d", signal.lam)
            self._mode = _Mode.RUN
            self._lam = signal.lam
        # UPDATE needs no action: every attempt rebuilds its candidate from
        # the current tip and mempool.

    def _select_transactions(self) -> tuple[H256, list[SignedTransaction]]:
        with self._blockchain.lock:
            parent = self._blockchain.tip
            state = self._blockchain.states[parent].copy()
        selected: list[SignedTransaction] = []
        with self._mempool.lock:
            for tx in self._mempool:
                if not state.is_transaction_valid(tx):
                    continue
                selected.append(tx)
                state.process(tx)
                if len(selected) == MAX_BLOCK_TRANSACTIONS:
                    break
        return parent, selected

    def _mine_once(self, parent: H256, txs: list[SignedTransaction]) -> bool:
        """Try one nonce; False only if a solved block held invalid transactions."""
        with self._blockchain.lock:
            difficulty = self._blockchain.get_difficulty()
        block = generate_block(parent, difficulty, txs)
        if block.hash() > difficulty:
            return True
        log.info("block generated, including %d transactions", len(txs))
        with self._blockchain.lock:
            state = self._blockchain.states[parent].copy()
        if not all(state.is_transaction_valid(tx) for tx in txs):
            log.info("mined block holds an invalid transaction")
            return False
        self._finished_blocks.put(block)
        for tx in block.data:
            state.process(tx)
        with self._blockchain.lock:
            self._blockchain.states[block.hash()] = state
        with self._mempool.lock:
            for tx in txs:
                self._mempool.discard(tx.hash())
        return True

    def _miner_loop(self) -> None:
        while True:
            if self._mode is _Mode.SHUTDOWN:
                return
            if self._mode is _Mode.PAUSED:
                self._apply(self._control.get())
                continue
            try:
                signal = self._control.get_nowait()
            except queue.Empty:
                pass
            else:
                self._apply(signal)
            if self._mode is _Mode.SHUTDOWN:
                return

            parent, txs = self._select_transactions()
            if not self._mine_once(parent, txs):
                continue

            if self._mode is _Mode.RUN and self._lam:
                time.sleep(self._lam / 1_000_000)


def new(
    blockchain: Blockchain, mempool: Mempool
) -> tuple[MinerContext, MinerHandle, queue.Queue]:
    """Create a miner; mined blocks arrive on the returned queue."""
    control: queue.Queue = queue.Queue()
    finished_blocks: queue.Queue = queue.Queue()
    ctx = MinerContext(control, finished_blocks, blockchain, mempool)
    return ctx, MinerHandle(control), finished_blocks