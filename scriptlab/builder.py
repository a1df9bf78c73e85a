"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Transaction construction: lock coins into a custom script, spend them back
"""

import math
from typing import Optional, Tuple, Union

from scriptlab import config
from scriptlab.crypto import CURVE_ORDER, Key, hash160, scalar_to_point_x
from scriptlab.errors import (
    ConsistencyError,
    ContextError,
    DustError,
    ExecutionError,
    InsufficientFundsError,
    OwnershipError,
    ParameterError,
    ParseError,
)
from scriptlab.interpreter import Spend, SpendContext
from scriptlab.puzzles import (
    RPUZZLE_VARIANTS,
    rpuzzle_commitment,
    rpuzzle_lock,
    rpuzzle_unlock_script,
)
from scriptlab.script import Script, parse_asm
from scriptlab.transaction import (
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
    p2pkh_lock,
    p2pkh_pubkey_hash,
    sign_p2pkh_input,
)
from scriptlab.util import get_logger

logger = get_logger(__name__)


class BuildResult:
    """A signed transaction ready to broadcast"""

    def __init__(self, txid: str, hex: str, size: int, fee: int, fee_rate: float):
        self.txid = txid
        self.hex = hex
        self.size = size
        self.fee = fee
        self.fee_rate = fee_rate

    @classmethod
    def from_transaction(cls, tx: Transaction, total_in: int) -> "BuildResult":
        raw = tx.to_hex()
        size = len(raw) // 2
        fee = total_in - tx.get_value_out()
        return cls(tx.txid, raw, size, fee, round(fee / size, 2))

    def __repr__(self):
        return f"BuildResult(txid={self.txid}, size={self.size}, fee={self.fee})"


def resolve_key(key: Union[Key, str]) -> Key:
    """Accept a Key or a WIF string"""
    if isinstance(key, Key):
        return key
    return Key.from_wif(key)


def estimate_fee(size: int, fee_rate: float) -> int:
    return math.ceil(size * fee_rate)


def _check_fee_rate(fee_rate: float):
    if fee_rate < 0:
        raise ParameterError(f"Fee rate must not be negative, got {fee_rate}")


def _load_source(source_tx_hex: str, source_output_index: int) -> Tuple[Transaction, TxOut]:
    source_tx = Transaction.from_hex(source_tx_hex)
    return source_tx, source_tx.output(source_output_index)


def _spend_input(source_tx: Transaction, source_output_index: int, sequence: int) -> TxIn:
    return TxIn(OutPoint(source_tx.get_hash(), source_output_index), Script(), sequence)


def build_lock_transaction(
    key: Union[Key, str],
    source_tx_hex: str,
    source_output_index: int,
    locking_asm: str,
    amount: int,
    fee_rate: float = config.DEFAULT_FEE_RATE,
    change_address: Optional[str] = None,
) -> BuildResult:
    """
    Spend one of the key's P2PKH outputs into an output locked by locking_asm

    Whatever is left above the dust threshold after the fee returns to
    change_address, or to the key's own address. The key always acts through
    its compressed public key, whatever its WIF says.
    """
    if amount <= 0:
        raise ParameterError(f"Amount must be a positive number of satoshis, got {amount}")
    _check_fee_rate(fee_rate)
    key = resolve_key(key)
    pubkey_hash = hash160(key.get_pubkey(compressed=True))
    source_tx, source_output = _load_source(source_tx_hex, source_output_index)

    source_hash = p2pkh_pubkey_hash(source_output.script_pubkey)
    if source_hash is None:
        raise OwnershipError(
            "The source output must be a standard P2PKH output (pay-to-address). "
            "Use a normal spendable output that pays to your address."
        )
    if source_hash != pubkey_hash:
        raise OwnershipError(
            "The source output does not pay to the address of this key. "
            "Check the source transaction and output index."
        )

    lock = parse_asm(locking_asm)
    available = source_output.value
    has_change = available > amount
    size = (
        config.TX_OVERHEAD
        + config.P2PKH_INPUT_SIZE
        + len(lock)
        + 8  # value of the locked output
        + 1  # output count
        + (config.P2PKH_OUTPUT_SIZE if has_change else 0)
    )
    fee = estimate_fee(size, fee_rate)
    change = available - amount - fee
    logger.debug("Lock transaction: estimated %d bytes, fee %d, change %d", size, fee, change)
    if change < 0:
        raise InsufficientFundsError(
            f"Insufficient funds. Need {amount + fee} sats, have {available} sats."
        )

    tx = Transaction(1, 0)
    tx.vin.append(_spend_input(source_tx, source_output_index, config.SEQUENCE_FINAL))
    tx.vout.append(TxOut(amount, lock))
    if change > config.DUST_THRESHOLD:
        tx.vout.append(TxOut(change, p2pkh_lock(change_address or pubkey_hash)))

    sign_p2pkh_input(tx, 0, key, available, source_output.script_pubkey, compressed=True)
    return BuildResult.from_transaction(tx, available)


def _check_unlocking_script(tx: Transaction, requested: Script):
    """The serialized input must carry exactly the requested unlocking script"""

    def installed() -> Script:
        return Transaction.from_bytes(tx.to_bytes()).vin[0].script_sig

    if installed() == requested:
        return
    logger.warning(
        "Unlocking script mismatch. Expected: %s, got: %s. Reinstating.",
        requested.to_asm(),
        installed().to_asm(),
    )
    tx.vin[0].script_sig = Script(requested.to_bytes())
    if installed() != requested:
        raise ConsistencyError(
            "Constructed transaction does not carry the requested unlocking script"
        )


def _build_script_spend(
    source_tx_hex: str,
    source_output_index: int,
    unlock: Script,
    unlock_size: int,
    destination_address: str,
    fee_rate: float,
    sequence: int,
    lock_time: int,
) -> BuildResult:
    _check_fee_rate(fee_rate)
    source_tx, source_output = _load_source(source_tx_hex, source_output_index)
    destination = p2pkh_lock(destination_address)

    available = source_output.value
    size = (
        config.TX_OVERHEAD
        + config.INPUT_OVERHEAD
        + unlock_size
        + config.P2PKH_OUTPUT_SIZE
        + 8
        + 1
    )
    fee = estimate_fee(size, fee_rate)
    output_amount = available - fee
    logger.debug("Unlock transaction: estimated %d bytes, fee %d, output %d", size, fee, output_amount)
    if output_amount < config.DUST_THRESHOLD:
        raise DustError(
            f"Insufficient funds after fee. Output would be {output_amount} sats "
            f"(below dust threshold of {config.DUST_THRESHOLD})."
        )

    tx = Transaction(1, lock_time)
    txin = _spend_input(source_tx, source_output_index, sequence)
    txin.script_sig = Script(unlock.to_bytes())
    tx.vin.append(txin)
    tx.vout.append(TxOut(output_amount, destination))

    _check_unlocking_script(tx, unlock)
    return BuildResult.from_transaction(tx, available)


def _destination(destination_address: Optional[str], key: Optional[Union[Key, str]]) -> str:
    if destination_address:
        return destination_address
    if key is not None:
        return resolve_key(key).get_address()
    raise ContextError("A destination address or a key is required")


def build_unlock_transaction(
    source_tx_hex: str,
    source_output_index: int,
    unlocking_asm: str,
    destination_address: Optional[str] = None,
    fee_rate: float = config.DEFAULT_FEE_RATE,
    key: Optional[Union[Key, str]] = None,
) -> BuildResult:
    """
    Spend a custom-locked output by supplying its unlocking script verbatim

    Without a destination address the payout goes to the key's address.
    """
    unlock = parse_asm(unlocking_asm)
    if not unlock.chunks:
        raise ParseError("Unlocking script is empty")
    return _build_script_spend(
        source_tx_hex,
        source_output_index,
        unlock,
        len(unlock),
        _destination(destination_address, key),
        fee_rate,
        config.SEQUENCE_FINAL,
        0,
    )


def build_unlock_transaction_with_lock_time(
    source_tx_hex: str,
    source_output_index: int,
    unlocking_asm: str,
    destination_address: str,
    fee_rate: float = config.DEFAULT_FEE_RATE,
    lock_time: int = 0,
) -> BuildResult:
    """
    Like build_unlock_transaction, with nLockTime set

    The input sequence is 0xFFFFFFFE so the lock time is enforced. An empty
    unlocking script is allowed.
    """
    if not 0 <= lock_time <= 0xFFFFFFFF:
        raise ParameterError(f"Lock time must be between 0 and 4294967295, got {lock_time}")
    unlock = parse_asm(unlocking_asm)
    return _build_script_spend(
        source_tx_hex,
        source_output_index,
        unlock,
        max(1, len(unlock)),
        destination_address,
        fee_rate,
        config.SEQUENCE_LOCKTIME_ENABLED,
        lock_time,
    )


def build_rpuzzle_unlock_transaction(
    key: Union[Key, str],
    k_hex: str,
    variant: str,
    source_tx_hex: str,
    source_output_index: int,
    destination_address: str,
    fee_rate: float = config.DEFAULT_FEE_RATE,
) -> BuildResult:
    """
    Spend an R-puzzle output by signing with the puzzle's nonce k

    Any key can sign. The finished spend is checked against the source
    locking script before it is returned.
    """
    _check_fee_rate(fee_rate)
    key = resolve_key(key)
    if variant not in RPUZZLE_VARIANTS:
        raise ValueError(f"Unknown R-puzzle variant: {variant}")
    try:
        k = int(k_hex, 16)
    except ValueError as e:
        raise ParseError(f"Invalid K value: {k_hex}") from e
    if not 1 <= k < CURVE_ORDER:
        raise ParseError("K value out of range")

    source_tx, source_output = _load_source(source_tx_hex, source_output_index)
    lock = source_output.script_pubkey
    expected = rpuzzle_lock(rpuzzle_commitment(scalar_to_point_x(k), variant), variant)
    if lock != expected:
        raise OwnershipError(f"The K value does not open this output as a {variant} R-puzzle")

    destination = p2pkh_lock(destination_address)
    available = source_output.value
    size = config.TX_OVERHEAD + config.RPUZZLE_INPUT_SIZE + config.P2PKH_OUTPUT_SIZE
    fee = estimate_fee(size, fee_rate)
    output_amount = available - fee
    logger.debug("R-puzzle unlock: estimated %d bytes, fee %d, output %d", size, fee, output_amount)
    if output_amount < config.DUST_THRESHOLD:
        raise DustError(
            f"Insufficient funds after fee. Output would be {output_amount} sats "
            f"(below dust threshold of {config.DUST_THRESHOLD})."
        )

    tx = Transaction(1, 0)
    tx.vin.append(_spend_input(source_tx, source_output_index, config.SEQUENCE_FINAL))
    tx.vout.append(TxOut(output_amount, destination))
    tx.vin[0].script_sig = rpuzzle_unlock_script(k, key, tx, 0, available, lock)

    context = SpendContext.from_transactions(source_tx, tx, source_output_index, 0)
    spend = Spend(lock, tx.vin[0].script_sig, context)
    try:
        spend.validate()
    except ExecutionError as e:
        raise ConsistencyError(f"R-puzzle spend does not validate: {e}") from e
    return BuildResult.from_transaction(tx, available)
