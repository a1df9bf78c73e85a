"""
Tests for cryptographic functions and Key
"""

import pytest

from .context import scriptlab
from scriptlab.crypto import (
    CURVE_ORDER,
    address_to_pubkey_hash,
    der_integer,
    double_sha256,
    pubkey_hash_to_address,
    scalar_to_point_x,
)

G_X = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798


def test_sha256():
    """Test SHA256 hash function"""
    assert (
        scriptlab.sha256(b"hello").hex()
        == "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
    )


def test_double_sha256():
    """Test double SHA256 hash function"""
    data = b"hello world"
    hash_val = double_sha256(data)
    assert len(hash_val) == 32
    assert hash_val == scriptlab.sha256(scriptlab.sha256(data))
    assert scriptlab.hash256(data) == hash_val


def test_ripemd160():
    """Test RIPEMD160 hash function"""
    assert scriptlab.ripemd160(b"hello").hex() == "108f07b8382412612c048d07d13f814118445acd"


def test_hash160():
    """Test hash160 (SHA256 then RIPEMD160)"""
    assert scriptlab.hash160(b"hello").hex() == "b6a9c8c230722b7c748331a8b450f05566dc7d0f"


def test_sha1():
    """Test SHA1 hash function"""
    assert scriptlab.sha1(b"hello").hex() == "aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d"


def test_key_from_secret():
    """Test the public key and address of a known secret"""
    key = scriptlab.Key.from_secret(1)
    assert key.get_pubkey().hex() == "02" + "%064x" % G_X
    assert len(key.get_pubkey(compressed=False)) == 65
    assert key.get_address() == "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"
    assert key.secret == 1


def test_key_wif():
    """Test WIF import and export"""
    key = scriptlab.Key.from_wif("KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn")
    assert key.secret == 1
    assert key.compressed
    assert key.to_wif() == "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"

    uncompressed = scriptlab.Key.from_wif("5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf")
    assert uncompressed.secret == 1
    assert not uncompressed.compressed
    assert len(uncompressed.get_pubkey()) == 65


def test_key_wif_invalid():
    """Test malformed WIF strings are context errors"""
    with pytest.raises(scriptlab.ContextError):
        scriptlab.Key.from_wif("not-a-wif")

    with pytest.raises(scriptlab.ContextError):
        scriptlab.Key.from_wif("1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH")


def test_key_generation():
    """Test key generation"""
    key = scriptlab.Key()
    key.generate_new_key()
    assert len(key.get_privkey()) == 32
    assert len(key.get_pubkey()) == 33
    assert scriptlab.Key.from_wif(key.to_wif()).get_pubkey() == key.get_pubkey()


def test_sign_and_verify():
    """Test signing and verification"""
    key = scriptlab.Key.from_secret(0xC0FFEE)
    digest = scriptlab.sha256(b"message")
    sig = key.sign(digest)
    assert sig[0] == 0x30
    assert scriptlab.Key.verify(key.get_pubkey(), digest, sig)
    assert not scriptlab.Key.verify(key.get_pubkey(), scriptlab.sha256(b"other"), sig)
    # RFC 6979 nonces are deterministic
    assert key.sign(digest) == sig


def test_sign_with_nonce():
    """Test a signature made with a chosen nonce carries x(k*G) as r"""
    key = scriptlab.Key.from_secret(0xC0FFEE)
    digest = scriptlab.sha256(b"message")
    k = 12345
    sig = key.sign(digest, k=k)
    len_r = sig[3]
    r = int.from_bytes(sig[4 : 4 + len_r], "big")
    assert r == scalar_to_point_x(k) % CURVE_ORDER
    assert scriptlab.Key.verify(key.get_pubkey(), digest, sig)


def test_verify_rejects_garbage():
    """Test verification of malformed input returns False"""
    key = scriptlab.Key.from_secret(7)
    digest = scriptlab.sha256(b"x")
    assert not scriptlab.Key.verify(key.get_pubkey(), digest, b"\x30\x00")
    other = scriptlab.Key.from_secret(8)
    assert not scriptlab.Key.verify(other.get_pubkey(), digest, key.sign(digest))


def test_scalar_to_point_x():
    """Test the generator's x coordinate"""
    assert scalar_to_point_x(1) == G_X
    with pytest.raises(ValueError):
        scalar_to_point_x(0)
    with pytest.raises(ValueError):
        scalar_to_point_x(CURVE_ORDER)


def test_der_integer():
    """Test DER integer encoding"""
    assert der_integer(0x7F) == b"\x7f"
    assert der_integer(0x80) == b"\x00\x80"
    assert der_integer(0x0100) == b"\x01\x00"
    assert der_integer(G_X) == bytes.fromhex("%064x" % G_X)


def test_addresses():
    """Test address encoding and decoding"""
    key = scriptlab.Key.from_secret(1)
    pubkey_hash = key.get_pubkey_hash()
    assert address_to_pubkey_hash("1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH") == pubkey_hash

    testnet = pubkey_hash_to_address(pubkey_hash, "testnet")
    assert testnet[0] in "mn"
    assert address_to_pubkey_hash(testnet) == pubkey_hash

    with pytest.raises(scriptlab.ContextError):
        pubkey_hash_to_address(pubkey_hash, "regtest")

    with pytest.raises(scriptlab.ContextError):
        address_to_pubkey_hash("1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMX")
