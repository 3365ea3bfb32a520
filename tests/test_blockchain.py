import pytest

from minicoin.block import generate_random_block
from minicoin.blockchain import Blockchain
from minicoin.hash import H256, generate_random_hash


def test_insert_one():
    blockchain = Blockchain()
    genesis_hash = blockchain.tip
    block = generate_random_block(genesis_hash)
    blockchain.insert(block)
    assert blockchain.tip == block.hash()


def test_genesis_only_chain():
    blockchain = Blockchain()
    assert blockchain.all_blocks_in_longest_chain() == [blockchain.tip]
    assert blockchain.heights[blockchain.tip] == 0
    assert blockchain.all_transactions_in_longest_chain() == [[]]


def test_genesis_block_contents_are_fixed():
    blockchain = Blockchain()
    genesis = blockchain.blocks[blockchain.tip]
    assert genesis.hash() == blockchain.tip
    assert genesis.header.parent == H256.zero()
    assert genesis.header.nonce == 0
    assert genesis.header.timestamp == 0
    assert genesis.header.merkle_root == H256.zero()
    assert genesis.data == []
    assert Blockchain().tip == blockchain.tip


def test_genesis_difficulty():
    assert Blockchain().get_difficulty() == H256(b"\x04" + bytes(31))


def test_genesis_state_has_ico():
    blockchain = Blockchain()
    state = blockchain.states[blockchain.tip]
    assert len(state.data) == 1
    assert next(iter(state.data.values())).balance == 2**63 - 1


def test_longest_chain_and_forks():
    blockchain = Blockchain()
    genesis = blockchain.tip
    first = generate_random_block(genesis)
    second = generate_random_block(genesis)
    blockchain.insert(first)
    blockchain.insert(second)
    assert blockchain.tip == first.hash()
    third = generate_random_block(second.hash())
    blockchain.insert(third)
    assert blockchain.tip == third.hash()
    assert blockchain.heights[third.hash()] == 2
    assert blockchain.all_blocks_in_longest_chain() == [
        genesis,
        second.hash(),
        third.hash(),
    ]


def test_transactions_in_longest_chain():
    blockchain = Blockchain()
    block = generate_random_block(blockchain.tip)
    blockchain.insert(block)
    assert blockchain.all_transactions_in_longest_chain() == [
        [],
        [block.data[0].hash()],
    ]


def test_insert_unknown_parent_raises():
    blockchain = Blockchain()
    tip = blockchain.tip
    orphan = generate_random_block(generate_random_hash())
    with pytest.raises(KeyError):
        blockchain.insert(orphan)
    assert orphan.hash() not in blockchain.blocks
    assert blockchain.tip == tip


def test_difficulty_follows_tip():
    blockchain = Blockchain()
    block = generate_random_block(blockchain.tip)
    blockchain.insert(block)
    assert blockchain.get_difficulty() == block.difficulty