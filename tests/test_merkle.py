import pytest

from minicoin.hash import H256, generate_random_hash
from minicoin.merkle import MerkleTree, verify


def gen_merkle_tree_data():
    return [
        H256.from_hex("0a0b0c0d0e0f0e0d0a0b0c0d0e0f0e0d0a0b0c0d0e0f0e0d0a0b0c0d0e0f0e0d"),
        H256.from_hex("0101010101010101010101010101010101010101010101010101010101010202"),
    ]


def test_merkle_root():
    merkle_tree = MerkleTree(gen_merkle_tree_data())
    assert merkle_tree.root() == H256.from_hex(
        "6b787718210e0b3b608814e04e61fde06d0df794319a12162f287412df3ec920"
    )


def test_merkle_proof():
    merkle_tree = MerkleTree(gen_merkle_tree_data())
    assert merkle_tree.proof(0) == [
        H256.from_hex("965b093a75a75895a351786dd7a188515173f6928a8af8c9baa4dcff268a4f0f")
    ]


def test_merkle_verifying():
    input_data = gen_merkle_tree_data()
    merkle_tree = MerkleTree(input_data)
    proof = merkle_tree.proof(0)
    assert verify(merkle_tree.root(), input_data[0].hash(), proof, 0, len(input_data))


def test_empty_tree_has_zero_root():
    tree = MerkleTree([])
    assert tree.root() == H256.zero()
    assert tree.proof(0) == []


@pytest.mark.parametrize("size", [1, 3, 5, 8])
def test_every_leaf_proof_verifies(size):
    data = [generate_random_hash() for _ in range(size)]
    tree = MerkleTree(data)
    for index, item in enumerate(data):
        proof = tree.proof(index)
        assert verify(tree.root(), item.hash(), proof, index, size)


def test_wrong_index_fails_verification():
    data = gen_merkle_tree_data()
    tree = MerkleTree(data)
    assert not verify(tree.root(), data[0].hash(), tree.proof(0), 1, 2)


def test_index_beyond_leaf_size_fails():
    data = gen_merkle_tree_data()
    tree = MerkleTree(data)
    assert not verify(tree.root(), data[0].hash(), tree.proof(0), 2, 2)


def test_proof_index_out_of_range():
    tree = MerkleTree([generate_random_hash() for _ in range(5)])
    with pytest.raises(IndexError):
        tree.proof(10)
    with pytest.raises(IndexError):
        tree.proof(-1)


def test_order_of_leaves_matters():
    data = gen_merkle_tree_data()
    assert MerkleTree(data).root() != MerkleTree(list(reversed(data))).root()