"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Hash puzzles and R-puzzles

A hash puzzle locks coins to the preimage of a digest. An R-puzzle locks
them to knowledge of an ECDSA nonce k: the locking script pulls r out of the
signature supplied at spend time and compares it with a commitment to
r = x(k*G). Any key may sign, so whoever learns k can spend.
"""

import secrets
from typing import Callable, Dict, Union

from scriptlab.crypto import (
    CURVE_ORDER,
    Key,
    der_integer,
    hash160,
    hash256,
    ripemd160,
    scalar_to_point_x,
    sha1,
    sha256,
)
from scriptlab.errors import ParseError
from scriptlab.script import (
    OP_1,
    OP_3,
    OP_CHECKSIG,
    OP_DROP,
    OP_EQUAL,
    OP_EQUALVERIFY,
    OP_NIP,
    OP_OVER,
    OP_SPLIT,
    OP_SWAP,
    OPCODES,
    Script,
)
from scriptlab.transaction import SIGHASH_ALL_FORKID, Transaction, signature_hash
from scriptlab.util import is_hex, strip_whitespace

HASH_TYPES = ("SHA256", "HASH160", "HASH256", "RIPEMD160", "SHA1")
RPUZZLE_VARIANTS = ("raw",) + HASH_TYPES

_HASH_FUNCTIONS: Dict[str, Callable[[bytes], bytes]] = {
    "SHA256": sha256,
    "HASH160": hash160,
    "HASH256": hash256,
    "RIPEMD160": ripemd160,
    "SHA1": sha1,
}


class HashPuzzle:
    def __init__(self, locking_asm: str, preimage_hex: str, digest_hex: str):
        self.locking_asm = locking_asm
        self.preimage_hex = preimage_hex
        self.digest_hex = digest_hex

    def __repr__(self):
        return f"HashPuzzle({self.locking_asm!r})"


class RPuzzle:
    """
    A freshly generated R-puzzle

    k_hex is the secret; only commitment_hex appears in the locking script.
    """

    def __init__(
        self,
        k_hex: str,
        r_hex: str,
        commitment_hex: str,
        locking_asm: str,
        locking_hex: str,
        note: str,
        variant: str = "raw",
    ):
        self.k_hex = k_hex
        self.r_hex = r_hex
        self.commitment_hex = commitment_hex
        self.locking_asm = locking_asm
        self.locking_hex = locking_hex
        self.note = note
        self.variant = variant

    def __repr__(self):
        return f"RPuzzle(variant={self.variant}, r={self.r_hex[:16]}...)"


def compute_hash(data: Union[str, bytes], hash_type: str) -> str:
    """Hex digest of data (bytes, or a hex string) under one of HASH_TYPES"""
    if hash_type not in _HASH_FUNCTIONS:
        raise ValueError(f"Unknown hash type: {hash_type}")
    if isinstance(data, str):
        data = bytes.fromhex(strip_whitespace(data))
    return _HASH_FUNCTIONS[hash_type](data).hex()


def build_hash_puzzle(secret: str, secret_is_hex: bool = False, hash_type: str = "SHA256") -> HashPuzzle:
    """
    Lock to a preimage: OP_<TYPE> <digest> OP_EQUAL

    Unlock by pushing the preimage.
    """
    if hash_type not in _HASH_FUNCTIONS:
        raise ValueError(f"Unknown hash type: {hash_type}")

    if secret_is_hex:
        preimage_hex = strip_whitespace(secret).lower()
        if preimage_hex and not is_hex(preimage_hex):
            raise ParseError(f"Invalid hex preimage: {secret}")
    else:
        preimage_hex = secret.encode("utf-8").hex()

    if not preimage_hex:
        raise ValueError("Preimage cannot be empty")

    digest_hex = compute_hash(preimage_hex, hash_type)
    lock = hash_puzzle_lock(bytes.fromhex(digest_hex), hash_type)
    return HashPuzzle(lock.to_asm(), preimage_hex, digest_hex)


def hash_puzzle_lock(digest: bytes, hash_type: str) -> Script:
    script = Script()
    script.push_opcode(OPCODES["OP_" + hash_type])
    script.push_data(digest)
    script.push_opcode(OP_EQUAL)
    return script


def rpuzzle_commitment(r: int, variant: str = "raw") -> bytes:
    """r as a DER signature carries it, hashed unless variant is raw"""
    if variant not in RPUZZLE_VARIANTS:
        raise ValueError(f"Unknown R-puzzle variant: {variant}")
    r_bytes = der_integer(r)
    if variant == "raw":
        return r_bytes
    return _HASH_FUNCTIONS[variant](r_bytes)


def rpuzzle_lock(commitment: bytes, variant: str = "raw") -> Script:
    """
    Build the R-puzzle locking script

    Expects <sig> <pubkey> on the stack. The prefix copies the signature and
    cuts r out of its DER encoding (skip 30 len 02, read the r length, split).
    """
    if variant not in RPUZZLE_VARIANTS:
        raise ValueError(f"Unknown R-puzzle variant: {variant}")

    script = Script()
    for opcode in (OP_OVER, OP_3, OP_SPLIT, OP_NIP, OP_1, OP_SPLIT, OP_SWAP, OP_SPLIT, OP_DROP):
        script.push_opcode(opcode)
    if variant != "raw":
        script.push_opcode(OPCODES["OP_" + variant])
    script.push_data(commitment)
    script.push_opcode(OP_EQUALVERIFY)
    script.push_opcode(OP_CHECKSIG)
    return script


def generate_puzzle(variant: str = "raw") -> RPuzzle:
    """Draw a random nonce and lock to a commitment of its r value"""
    if variant not in RPUZZLE_VARIANTS:
        raise ValueError(f"Unknown R-puzzle variant: {variant}")

    k = secrets.randbelow(CURVE_ORDER - 1) + 1
    r = scalar_to_point_x(k)
    k_hex = k.to_bytes(32, "big").hex()
    r_hex = r.to_bytes(32, "big").hex()

    commitment = rpuzzle_commitment(r, variant)
    lock = rpuzzle_lock(commitment, variant)

    type_name = "raw R value" if variant == "raw" else f"{variant}(R)"
    note = (
        f"K value: {k_hex[:16]}... (save this to unlock!). "
        f"R value: {r_hex[:16]}... Locked to {type_name}."
    )
    return RPuzzle(k_hex, r_hex, commitment.hex(), lock.to_asm(), lock.to_hex(), note, variant)


def rpuzzle_unlock_script(
    k: int,
    key: Key,
    tx: Transaction,
    input_index: int,
    source_satoshis: int,
    locking_script: Script,
) -> Script:
    """<sig> <pubkey>, signed with the puzzle's nonce so the signature carries its r"""
    digest = signature_hash(tx, input_index, locking_script, source_satoshis, SIGHASH_ALL_FORKID)
    script = Script()
    script.push_data(key.sign(digest, k=k) + bytes([SIGHASH_ALL_FORKID]))
    script.push_data(key.get_pubkey())
    return script
