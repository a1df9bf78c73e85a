"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Cryptographic functions: SHA1, SHA256, RIPEMD160, ECDSA, base58check
"""

import hashlib
from typing import Optional

import base58
from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey
from ecdsa.der import UnexpectedDER
from ecdsa.errors import MalformedPointError
from ecdsa.util import sigdecode_der, sigencode_der_canonize
from ripemd.ripemd160 import ripemd160 as _ripemd160

from scriptlab import config
from scriptlab.errors import ContextError

CURVE_ORDER = SECP256k1.order


def sha1(data: bytes) -> bytes:
    """SHA1 hash"""
    return hashlib.sha1(data).digest()


def sha256(data: bytes) -> bytes:
    """Single SHA256 hash"""
    return hashlib.sha256(data).digest()


def double_sha256(data: bytes) -> bytes:
    """Double SHA256 hash (Bitcoin hash)"""
    return sha256(sha256(data))


def ripemd160(data: bytes) -> bytes:
    """RIPEMD160 hash"""
    return bytes(_ripemd160(bytes(data)))


def hash160(data: bytes) -> bytes:
    """SHA256 followed by RIPEMD160"""
    return ripemd160(sha256(data))


def hash256(data: bytes) -> bytes:
    """Double SHA256"""
    return double_sha256(data)


def der_integer(n: int) -> bytes:
    """
    Big-endian bytes of a positive integer exactly as DER carries it:
    no leading zero bytes, plus one 0x00 when the high bit is set.
    """
    raw = n.to_bytes(max(1, (n.bit_length() + 7) // 8), "big")
    if raw[0] & 0x80:
        raw = b"\x00" + raw
    return raw


def scalar_to_point_x(k: int) -> int:
    """x coordinate of k*G"""
    if not 1 <= k < CURVE_ORDER:
        raise ValueError("Scalar out of range")
    return (SECP256k1.generator * k).x()


def pubkey_hash_to_address(pubkey_hash: bytes, network: Optional[str] = None) -> str:
    """Base58check P2PKH address for a 20-byte public key hash"""
    network = network or config.NETWORK
    if network not in config.ADDRESS_VERSIONS:
        raise ContextError(f"Unknown network: {network}")
    version = bytes([config.ADDRESS_VERSIONS[network]])
    return base58.b58encode_check(version + pubkey_hash).decode("ascii")


def address_to_pubkey_hash(address: str) -> bytes:
    """Decode a base58check P2PKH address (mainnet or testnet)"""
    try:
        payload = base58.b58decode_check(address.strip())
    except ValueError as e:
        raise ContextError(f"Invalid address {address!r}: {e}") from e
    if len(payload) != 21 or payload[0] not in config.ADDRESS_VERSIONS.values():
        raise ContextError(f"Invalid address {address!r}: not a P2PKH address")
    return payload[1:]


class Key:
    """ECDSA secp256k1 key"""

    def __init__(self):
        self._key = None
        self._pubkey = None
        self.compressed = True

    def generate_new_key(self):
        """Generate a new key pair"""
        self._key = SigningKey.generate(curve=SECP256k1)
        self._pubkey = self._key.get_verifying_key()

    @classmethod
    def from_secret(cls, secret: int) -> "Key":
        key = cls()
        key._key = SigningKey.from_secret_exponent(secret, curve=SECP256k1)
        key._pubkey = key._key.get_verifying_key()
        return key

    @classmethod
    def from_wif(cls, wif: str) -> "Key":
        """Load a private key from wallet import format"""
        try:
            payload = base58.b58decode_check(wif.strip())
        except ValueError as e:
            raise ContextError(f"Invalid WIF: {e}") from e

        if not payload or payload[0] not in config.WIF_VERSIONS.values():
            raise ContextError("Invalid WIF: unknown version byte")
        body = payload[1:]
        key = cls()
        if len(body) == 33 and body[32] == 0x01:
            body = body[:32]
        elif len(body) == 32:
            key.compressed = False
        else:
            raise ContextError("Invalid WIF: bad key length")

        if not key.set_privkey(body):
            raise ContextError("Invalid WIF: key out of range")
        return key

    def to_wif(self, network: Optional[str] = None) -> str:
        network = network or config.NETWORK
        payload = bytes([config.WIF_VERSIONS[network]]) + self.get_privkey()
        if self.compressed:
            payload += b"\x01"
        return base58.b58encode_check(payload).decode("ascii")

    @property
    def public_key(self) -> bytes:
        """Public key as property"""
        return self.get_pubkey()

    @property
    def private_key(self) -> bytes:
        """Private key as property"""
        return self.get_privkey()

    @property
    def secret(self) -> int:
        return int.from_bytes(self.get_privkey(), "big")

    def get_pubkey(self, compressed: Optional[bool] = None) -> bytes:
        """Get public key as bytes (SEC encoding)"""
        if self._pubkey is None:
            raise ValueError("No public key")
        if compressed is None:
            compressed = self.compressed
        return self._pubkey.to_string("compressed" if compressed else "uncompressed")

    def get_privkey(self) -> bytes:
        """Get private key as bytes"""
        if self._key is None:
            raise ValueError("No private key")
        return self._key.to_string()

    def set_privkey(self, privkey: bytes) -> bool:
        """Set private key from bytes"""
        try:
            self._key = SigningKey.from_string(privkey, curve=SECP256k1)
        except (ValueError, MalformedPointError):
            return False
        self._pubkey = self._key.get_verifying_key()
        return True

    def get_pubkey_hash(self) -> bytes:
        return hash160(self.get_pubkey())

    def get_address(self, network: Optional[str] = None) -> str:
        return pubkey_hash_to_address(self.get_pubkey_hash(), network)

    def sign(self, digest: bytes, k: Optional[int] = None) -> bytes:
        """
        Sign a 32-byte digest, returning a low-S DER signature

        Without k the nonce is derived deterministically (RFC 6979). With k
        the signature's r is the x coordinate of k*G.
        """
        if self._key is None:
            raise ValueError("No private key")
        if k is None:
            return self._key.sign_digest_deterministic(
                digest, hashfunc=hashlib.sha256, sigencode=sigencode_der_canonize
            )
        return self._key.sign_digest(digest, sigencode=sigencode_der_canonize, k=k)

    @staticmethod
    def verify(pubkey: bytes, digest: bytes, sig: bytes) -> bool:
        """Verify a DER signature over a digest"""
        try:
            vk = VerifyingKey.from_string(pubkey, curve=SECP256k1)
            return vk.verify_digest(sig, digest, sigdecode=sigdecode_der)
        except (BadSignatureError, MalformedPointError, UnexpectedDER):
            return False
