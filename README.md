# minicoin

A small proof-of-work cryptocurrency node. Each node keeps a tree of blocks
holding account-based transactions signed with Ed25519, mines blocks against a
fixed difficulty, exchanges blocks and transactions with its peers over TCP,
and exposes a small JSON API over HTTP for controlling and inspecting it.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running a node

```
minicoin --p2p 127.0.0.1:6000 --api 127.0.0.1:7000
```

Options:

- `--p2p ADDR` — IP address and port of the P2P server (default `127.0.0.1:6000`)
- `--api ADDR` — IP address and port of the API server (default `127.0.0.1:7000`)
- `-c PEER`, `--connect PEER` — peers to connect to at start; the option may be
  repeated and takes one or more addresses. A peer whose address cannot be
  parsed is skipped; a failed connection is retried once a second.
- `--p2p-workers INT` — number of threads handling incoming P2P messages
  (default `4`)
- `-v` — increases the verbosity of logging (errors only by default; `-v`
  warnings, `-vv` info, `-vvv` debug). Logs go to standard error.
- `--version` — prints the version and exits

Addresses are written `ip:port` or `[ipv6]:port`; host names are not accepted.
An address or worker count that cannot be parsed makes the command exit with
status 1.

A second node joining the first:

```
minicoin --p2p 127.0.0.1:6001 --api 127.0.0.1:7001 -c 127.0.0.1:6000
```

The node starts with its miner paused and its transaction generator idle.
Start them through the API. The node runs until interrupted.

## HTTP API

Every endpoint answers with JSON (the request method is not checked).

| Path | Query | Effect |
| --- | --- | --- |
| `/miner/start` | `lambda` | Start mining, sleeping `lambda` microseconds between attempts |
| `/tx-generator/start` | `theta` | Start generating transactions, sleeping `theta` milliseconds between them |
| `/network/ping` | | Broadcast a ping to all peers |
| `/blockchain/longest-chain` | | Block hashes of the longest chain, genesis first |
| `/blockchain/longest-chain-tx` | | Transaction hashes of each block in the longest chain |
| `/blockchain/state` | `block` | Sorted `(address, nonce, balance)` entries of the state after the block at that index in the longest chain |
| `/blockchain/longest-chain-tx-count` | | Always answers `{"success": false, "message": "unimplemented!"}` |

Control endpoints answer with `{"success": ..., "message": ...}`. A missing or
unparsable query parameter, or a block index past the end of the chain, gives
`"success": false` with a message saying why. An unknown path answers with
status 404 and the message `endpoint not found`.

```
curl "http://127.0.0.1:7000/miner/start?lambda=0"
curl "http://127.0.0.1:7000/tx-generator/start?theta=100"
curl "http://127.0.0.1:7000/blockchain/longest-chain"
```

## How a node behaves

- The chain starts from a fixed genesis block whose state holds one locally
  owned account (derived from an all-zero seed) with the largest 64-bit
  balance.
- The miner (`minicoin.miner`) picks up to 50 mempool transactions that are
  valid against the tip's state, and tries random nonces until a block hash is
  at or below the difficulty. Found blocks are inserted and announced by
  `minicoin.miner_worker.MinerWorker`.
- The transaction generator (`minicoin.generator.TransactionGenerator`) spends
  from local accounts holding more than one coin; one in five transactions goes
  to an existing address, the rest to a newly created local address.
- `minicoin.network_worker.NetworkWorker` answers pings, requests announced
  blocks and transactions, checks received blocks against their parent's state
  and difficulty, holds blocks whose parent is unknown until it arrives within
  the same message, and re-announces what it accepts.

## Using the library

The building blocks can be used on their own:

```python
from minicoin.blockchain import Blockchain
from minicoin.block import generate_block
from minicoin.merkle import MerkleTree, verify
from minicoin.hash import H256

chain = Blockchain()
parent = chain.tip
difficulty = chain.get_difficulty()

block = generate_block(parent, difficulty, [])
if block.hash() <= difficulty:
    chain.insert(block)

print(chain.all_blocks_in_longest_chain())

leaves = [H256.from_hex("0a" * 32), H256.from_hex("01" * 32)]
tree = MerkleTree(leaves)
assert verify(tree.root(), leaves[0].hash(), tree.proof(0), 0, len(leaves))
```

Other pieces:

- `minicoin.transaction` — `Transaction`, `SignedTransaction`, `sign` and
  `verify`; `minicoin.keys` creates Ed25519 keys.
- `minicoin.state.State` — balances and nonces, and
  `is_transaction_valid` (signature, sender key, balance and nonce checks).
- `minicoin.mempool.Mempool` — pending transactions in arrival order.
- `minicoin.message.Message` — P2P messages with `encode` and `decode`;
  `minicoin.server.encode_frame` and `read_frame` handle the length-prefixed
  framing on the wire.
- `minicoin.server.new_server` — the TCP server; `ServerHandle.for_test`
  gives a handle whose broadcasts can be read back without a network.

## What it does not do

- Nothing is stored on disk: the chain, states, mempool and local account seeds
  live in memory and are lost when the node stops.
- The difficulty is fixed at the genesis value; it is never adjusted.
- There is no way to import or export keys, or to submit a transaction of your
  own through the API; transactions come from the generator or from peers.
- Peers are only dialed at start with `--connect` or through
  `ServerHandle.connect`; there is no peer discovery.