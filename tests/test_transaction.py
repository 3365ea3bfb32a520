import pytest

from minicoin import keys
from minicoin.address import Address
from minicoin.codec import DecodeError, Decoder
from minicoin.transaction import (
    SignedTransaction,
    Transaction,
    generate_random_signed_transaction,
    generate_random_transaction,
    sign,
    verify,
)


def test_sign_verify():
    t = generate_random_transaction()
    key = keys.random()
    signature = sign(t, key)
    assert verify(t, keys.public_key_bytes(key), signature)


def test_sign_verify_two():
    t = generate_random_transaction()
    key = keys.random()
    signature = sign(t, key)
    key_2 = keys.random()
    t_2 = generate_random_transaction()
    assert not verify(t_2, keys.public_key_bytes(key), signature)
    assert not verify(t, keys.public_key_bytes(key_2), signature)


def test_verify_rejects_malformed_public_key():
    t = generate_random_transaction()
    signature = sign(t, keys.random())
    assert verify(t, b"\x00\x01", signature) is False


def test_transaction_encoding_layout():
    t = Transaction(
        sender=Address(b"\x01" * 20), receiver=Address(b"\x02" * 20), value=-1, nonce=3
    )
    encoded = t.encode()
    assert len(encoded) == 52
    assert encoded[:20] == b"\x01" * 20
    assert encoded[20:40] == b"\x02" * 20
    assert encoded[40:48] == b"\xff" * 8
    assert encoded[48:] == b"\x03\x00\x00\x00"


def test_transaction_round_trip():
    t = generate_random_transaction()
    decoder = Decoder(t.encode())
    assert Transaction.decode(decoder) == t
    assert decoder.remaining == 0


def test_signed_transaction_round_trip_and_hash():
    st = generate_random_signed_transaction()
    decoder = Decoder(st.encode())
    decoded = SignedTransaction.decode(decoder)
    assert decoded == st
    assert decoded.hash() == st.hash()


def test_generated_signed_transaction_is_valid():
    st = generate_random_signed_transaction()
    assert verify(st.transaction, st.public_key, st.signature)
    assert st.transaction.sender == Address.from_public_key_bytes(st.public_key)


def test_hash_changes_with_content():
    st = generate_random_signed_transaction()
    other = SignedTransaction(st.transaction, st.signature, bytes(32))
    assert st.hash() != other.hash()


def test_truncated_signed_transaction_fails():
    data = generate_random_signed_transaction().encode()[:-5]
    with pytest.raises(DecodeError):
        SignedTransaction.decode(Decoder(data))