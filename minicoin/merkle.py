"""Merkle trees over hashable items, with inclusion proofs."""

from __future__ import annotations

from collections.abc import Sequence

from minicoin.hash import H256, sha256


def _hash_pair(left: H256, right: H256) -> H256:
    return sha256(bytes(left) + bytes(right))


class MerkleTree:
    """A Merkle tree built from the hashes of ``data``.

    Odd-length levels are padded by repeating their last hash. An empty tree
    has the zero hash as its root.
    """

    def __init__(self, data: Sequence) -> None:
        leaves = [item.hash() for item in data]
        if not leaves:
            self._levels = [[H256.zero()]]
            return
        if len(leaves) % 2:
            leaves.append(leaves[-1])
        levels = [leaves]
        current = leaves
        while True:
            parents = [_hash_pair(l, r) for l, r in zip(current[::2], current[1::2])]
            if len(parents) == 1:
                levels.append(parents)
                break
            if len(parents) % 2:
                parents.append(parents[-1])
            levels.append(parents)
            current = parents
        self._levels = levels

    def root(self) -> H256:
        return self._levels[-1][0]

    def proof(self, index: int) -> list[H256]:
        """Sibling hashes from the leaf at ``index`` up to the root."""
        if index < 0:
            raise IndexError(f"negative leaf index {index}")
        proof = []
        for level in self._levels:
            if len(level) == 1:
                break
            sibling = index + 1 if index % 2 == 0 else index - 1
            proof.append(level[sibling])
            index //= 2
        return proof


def verify(
    root: H256, datum: H256, proof: Sequence[H256], index: int, leaf_size: int
) -> bool:
    """Check that ``datum`` at ``index`` with ``proof`` hashes up to ``root``."""
    if leaf_size <= index:
        return False
    current = datum
    for sibling in proof:
        if index % 2 == 0:
            current = _hash_pair(current, sibling)
        else:
            current = _hash_pair(sibling, current)
        index //= 2
    return current == root