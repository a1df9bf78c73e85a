"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Transactions, the FORKID signature hash and P2PKH helpers
"""

from typing import List, Optional, Union

from scriptlab import config
from scriptlab.crypto import Key, address_to_pubkey_hash, double_sha256
from scriptlab.errors import OutOfRangeError, ParseError
from scriptlab.script import (
    OP_CHECKSIG,
    OP_DUP,
    OP_EQUALVERIFY,
    OP_HASH160,
    Script,
)
from scriptlab.serialize import DataStream, get_size_of_compact_size
from scriptlab.util import error, strip_whitespace

# Signature hash types
SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_FORKID = 0x40
SIGHASH_ANYONECANPAY = 0x80
SIGHASH_ALL_FORKID = SIGHASH_ALL | SIGHASH_FORKID

MAX_SIZE = 0x02000000


class OutPoint:
    """Reference to a transaction output"""

    def __init__(self, hash_tx: bytes = None, n: int = 0):
        # internal (little-endian) byte order
        self.hash = bytes(hash_tx) if hash_tx else bytes(32)
        self.n = n

    @classmethod
    def from_txid(cls, txid: str, n: int) -> "OutPoint":
        """Build from a display-order (big-endian) txid"""
        return cls(bytes.fromhex(txid)[::-1], n)

    @property
    def txid(self) -> str:
        return self.hash[::-1].hex()

    def serialize(self, stream: DataStream):
        """Serialize to stream"""
        stream.write(self.hash)
        stream.write_uint32(self.n)

    def unserialize(self, stream: DataStream):
        """Unserialize from stream"""
        self.hash = stream.read(32)
        self.n = stream.read_uint32()

    def to_bytes(self) -> bytes:
        stream = DataStream()
        self.serialize(stream)
        return stream.get_bytes()

    def __eq__(self, other):
        return isinstance(other, OutPoint) and self.hash == other.hash and self.n == other.n

    def __hash__(self):
        return hash((self.hash, self.n))

    def __repr__(self):
        return f"OutPoint(txid={self.txid[:12]}, n={self.n})"


class TxIn:
    """Transaction input"""

    def __init__(
        self,
        prevout: OutPoint = None,
        script_sig: Script = None,
        sequence: int = config.SEQUENCE_FINAL,
    ):
        self.prevout = prevout if prevout else OutPoint()
        self.script_sig = script_sig if script_sig else Script()
        self.sequence = sequence

    def serialize(self, stream: DataStream):
        """Serialize to stream"""
        self.prevout.serialize(stream)
        stream.write_var_bytes(bytes(self.script_sig.data))
        stream.write_uint32(self.sequence)

    def unserialize(self, stream: DataStream):
        """Unserialize from stream"""
        self.prevout.unserialize(stream)
        self.script_sig = Script(stream.read_var_bytes())
        self.sequence = stream.read_uint32()

    def is_final(self) -> bool:
        """Check if input is final"""
        return self.sequence == config.SEQUENCE_FINAL

    def get_serialize_size(self) -> int:
        """Get serialized size"""
        return 36 + get_size_of_compact_size(len(self.script_sig)) + len(self.script_sig) + 4


class TxOut:
    """Transaction output"""

    def __init__(self, value: int = 0, script_pubkey: Script = None):
        self.value = value
        self.script_pubkey = script_pubkey if script_pubkey else Script()

    def serialize(self, stream: DataStream):
        """Serialize to stream"""
        stream.write_uint64(self.value)
        stream.write_var_bytes(bytes(self.script_pubkey.data))

    def unserialize(self, stream: DataStream):
        """Unserialize from stream"""
        self.value = stream.read_uint64()
        self.script_pubkey = Script(stream.read_var_bytes())

    def to_bytes(self) -> bytes:
        stream = DataStream()
        self.serialize(stream)
        return stream.get_bytes()

    def get_serialize_size(self) -> int:
        """Get serialized size"""
        return 8 + get_size_of_compact_size(len(self.script_pubkey)) + len(self.script_pubkey)


class Transaction:
    """Bitcoin transaction"""

    def __init__(self, version: int = 1, lock_time: int = 0):
        self.version = version
        self.vin: List[TxIn] = []
        self.vout: List[TxOut] = []
        self.lock_time = lock_time

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Transaction":
        stream = DataStream(raw)
        tx = cls()
        try:
            tx.unserialize(stream)
        except ValueError as e:
            raise ParseError(f"Malformed transaction: {e}", position=stream.n_read_pos) from e
        if not stream.empty():
            raise ParseError(
                f"Malformed transaction: {stream.size()} trailing bytes",
                position=stream.n_read_pos,
            )
        return tx

    @classmethod
    def from_hex(cls, hex_str: str) -> "Transaction":
        cleaned = strip_whitespace(hex_str)
        try:
            raw = bytes.fromhex(cleaned)
        except ValueError as e:
            raise ParseError(f"Malformed transaction hex: {e}") from e
        return cls.from_bytes(raw)

    def get_hash(self) -> bytes:
        """Transaction hash in internal byte order"""
        return double_sha256(self.to_bytes())

    @property
    def txid(self) -> str:
        """Transaction id in display order"""
        return self.get_hash()[::-1].hex()

    def serialize(self, stream: DataStream):
        """Serialize to stream"""
        stream.write_int32(self.version)
        stream.write_compact_size(len(self.vin))
        for txin in self.vin:
            txin.serialize(stream)
        stream.write_compact_size(len(self.vout))
        for txout in self.vout:
            txout.serialize(stream)
        stream.write_uint32(self.lock_time)

    def unserialize(self, stream: DataStream):
        """Unserialize from stream"""
        self.version = stream.read_int32()
        self.vin = []
        for _ in range(stream.read_compact_size()):
            txin = TxIn()
            txin.unserialize(stream)
            self.vin.append(txin)
        self.vout = []
        for _ in range(stream.read_compact_size()):
            txout = TxOut()
            txout.unserialize(stream)
            self.vout.append(txout)
        self.lock_time = stream.read_uint32()

    def to_bytes(self) -> bytes:
        stream = DataStream()
        self.serialize(stream)
        return stream.get_bytes()

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    def get_serialize_size(self) -> int:
        """Get serialized size"""
        size = 4  # version
        size += get_size_of_compact_size(len(self.vin))
        for txin in self.vin:
            size += txin.get_serialize_size()
        size += get_size_of_compact_size(len(self.vout))
        for txout in self.vout:
            size += txout.get_serialize_size()
        size += 4  # lock_time
        return size

    def get_value_out(self) -> int:
        """Get total value of outputs"""
        total = 0
        for txout in self.vout:
            if txout.value < 0:
                raise ValueError("Negative output value")
            total += txout.value
        return total

    def check_transaction(self) -> bool:
        """Basic structural checks"""
        if len(self.vin) == 0 or len(self.vout) == 0:
            return error("CheckTransaction() : vin or vout empty")

        for txout in self.vout:
            if txout.value < 0:
                return error("CheckTransaction() : txout.value negative")

        if self.get_serialize_size() > MAX_SIZE:
            return error("CheckTransaction() : size limits failed")

        return True

    def output(self, index: int) -> TxOut:
        if not 0 <= index < len(self.vout):
            raise OutOfRangeError(
                f"Invalid output index {index}. Transaction has {len(self.vout)} outputs."
            )
        return self.vout[index]

    def input(self, index: int) -> TxIn:
        if not 0 <= index < len(self.vin):
            raise OutOfRangeError(
                f"Invalid input index {index}. Transaction has {len(self.vin)} inputs."
            )
        return self.vin[index]

    def __repr__(self):
        return (
            f"Transaction(version={self.version}, "
            f"vin={len(self.vin)}, vout={len(self.vout)}, "
            f"lock_time={self.lock_time})"
        )


def signature_preimage(
    tx_to: Transaction,
    n_in: int,
    script_code: Script,
    value: int,
    n_hash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    """
    Serialize the FORKID signature preimage for one input

    Args:
        tx_to: Transaction being signed
        n_in: Input index
        script_code: Script code of the output being spent
        value: Value of the output being spent
        n_hash_type: Hash type (SIGHASH_ALL|SIGHASH_FORKID, etc.)
    """
    if n_in >= len(tx_to.vin):
        raise OutOfRangeError(f"SignatureHash() : nIn={n_in} out of range")

    base_type = n_hash_type & 0x1F
    anyone_can_pay = bool(n_hash_type & SIGHASH_ANYONECANPAY)
    zero = bytes(32)

    hash_prevouts = zero
    if not anyone_can_pay:
        hash_prevouts = double_sha256(b"".join(txin.prevout.to_bytes() for txin in tx_to.vin))

    hash_sequence = zero
    if not anyone_can_pay and base_type not in (SIGHASH_SINGLE, SIGHASH_NONE):
        stream = DataStream()
        for txin in tx_to.vin:
            stream.write_uint32(txin.sequence)
        hash_sequence = double_sha256(stream.get_bytes())

    hash_outputs = zero
    if base_type not in (SIGHASH_SINGLE, SIGHASH_NONE):
        hash_outputs = double_sha256(b"".join(txout.to_bytes() for txout in tx_to.vout))
    elif base_type == SIGHASH_SINGLE and n_in < len(tx_to.vout):
        hash_outputs = double_sha256(tx_to.vout[n_in].to_bytes())

    txin = tx_to.vin[n_in]
    stream = DataStream()
    stream.write_int32(tx_to.version)
    stream.write(hash_prevouts)
    stream.write(hash_sequence)
    txin.prevout.serialize(stream)
    stream.write_var_bytes(bytes(script_code.data))
    stream.write_uint64(value)
    stream.write_uint32(txin.sequence)
    stream.write(hash_outputs)
    stream.write_uint32(tx_to.lock_time)
    stream.write_uint32(n_hash_type)
    return stream.get_bytes()


def signature_hash(
    tx_to: Transaction,
    n_in: int,
    script_code: Script,
    value: int,
    n_hash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    """Digest signed by OP_CHECKSIG for the given input"""
    return double_sha256(signature_preimage(tx_to, n_in, script_code, value, n_hash_type))


def p2pkh_lock(destination: Union[bytes, str]) -> Script:
    """OP_DUP OP_HASH160 <hash> OP_EQUALVERIFY OP_CHECKSIG for a hash or address"""
    if isinstance(destination, str):
        destination = address_to_pubkey_hash(destination)
    script = Script()
    script.push_opcode(OP_DUP)
    script.push_opcode(OP_HASH160)
    script.push_data(destination)
    script.push_opcode(OP_EQUALVERIFY)
    script.push_opcode(OP_CHECKSIG)
    return script


def p2pkh_pubkey_hash(script: Script) -> Optional[bytes]:
    """The embedded 20-byte hash if script is a standard P2PKH lock"""
    try:
        chunks = script.chunks
    except ParseError:
        return None
    if (
        len(chunks) == 5
        and chunks[0].op == OP_DUP
        and chunks[1].op == OP_HASH160
        and chunks[2].op == 20
        and chunks[2].data is not None
        and len(chunks[2].data) == 20
        and chunks[3].op == OP_EQUALVERIFY
        and chunks[4].op == OP_CHECKSIG
    ):
        return chunks[2].data
    return None


def sign_p2pkh_input(
    tx: Transaction,
    n_in: int,
    key: Key,
    source_satoshis: int,
    source_script: Script,
    n_hash_type: int = SIGHASH_ALL_FORKID,
    compressed: Optional[bool] = None,
) -> Script:
    """Sign one input and install <sig> <pubkey> as its unlocking script"""
    digest = signature_hash(tx, n_in, source_script, source_satoshis, n_hash_type)
    script_sig = Script()
    script_sig.push_data(key.sign(digest) + bytes([n_hash_type]))
    script_sig.push_data(key.get_pubkey(compressed))
    tx.vin[n_in].script_sig = script_sig
    return script_sig
