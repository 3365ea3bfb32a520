"""The block tree, its heights, per-block states and the longest-chain tip."""

from __future__ import annotations

import logging
import threading

from minicoin.block import Block, BlockHeader
from minicoin.hash import H256
from minicoin.merkle import MerkleTree
from minicoin.state import State
from minicoin.transaction import SignedTransaction

log = logging.getLogger(__name__)

GENESIS_DIFFICULTY = H256(b"\x04" + bytes(31))


def _genesis() -> Block:
    header = BlockHeader(
        parent=H256.zero(),
        nonce=0,
        difficulty=GENESIS_DIFFICULTY,
        timestamp=0,
        merkle_root=MerkleTree([]).root(),
    )
    return Block(header=header, data=())


class Blockchain:
    """A tree of blocks rooted at a fixed genesis block.

    ``lock`` is for callers sharing the chain between threads.
    """

    def __init__(self) -> None:
        genesis = _genesis()
        genesis_hash = genesis.hash()
        log.info("genesis hash: %r", genesis_hash)
        self.blocks: dict[H256, Block] = {genesis_hash: genesis}
        self.heights: dict[H256, int] = {genesis_hash: 0}
        self.transactions: dict[H256, SignedTransaction] = {}
        self.states: dict[H256, State] = {genesis_hash: State.ico()}
        self.tip: H256 = genesis_hash
        self.lock = threading.RLock()

    def insert(self, block: Block) -> None:
        """Add ``block``; it becomes the tip if it makes a strictly longer chain."""
        parent_height = self.heights.get(block.parent)
        if parent_height is None:
            raise KeyError(f"unknown parent block {block.parent}")
        block_hash = block.hash()
        self.blocks[block_hash] = block
        height = parent_height + 1
        self.heights[block_hash] = height
        if height > self.heights[self.tip]:
            self.tip = block_hash

    def get_difficulty(self) -> H256:
        return self.blocks[self.tip].difficulty

    def all_blocks_in_longest_chain(self) -> list[H256]:
        """Hashes from genesis to the tip."""
        chain = []
        current = self.tip
        zero = H256.zero()
        while current != zero:
            chain.append(current)
            current = self.blocks[current].parent
        chain.reverse()
        return chain

    def all_transactions_in_longest_chain(self) -> list[list[H256]]:
        """Transaction hashes of each block from genesis to the tip."""
        return [
            [tx.hash() for tx in self.blocks[block_hash].data]
            for block_hash in self.all_blocks_in_longest_chain()
        ]