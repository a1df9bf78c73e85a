"""
Tests for lock and unlock transaction construction
"""

import logging

import pytest

from .context import scriptlab
from .vectors import HELLO_SHA256, funding_transaction
from scriptlab import config
from scriptlab.builder import estimate_fee, resolve_key
from scriptlab.transaction import p2pkh_lock

HELLO_LOCK = f"OP_SHA256 {HELLO_SHA256} OP_EQUAL"


@pytest.fixture
def key():
    return scriptlab.Key.from_secret(0xA11CE)


@pytest.fixture
def destination():
    return scriptlab.Key.from_secret(0xB0B).get_address()


def _funded(key, value=100000):
    return funding_transaction(p2pkh_lock(key.get_pubkey_hash()), value).to_hex()


def _locked(lock_asm, value):
    return funding_transaction(scriptlab.parse_asm(lock_asm), value).to_hex()


def test_estimate_fee():
    """Test fees round up"""
    assert estimate_fee(99, 0.5) == 50
    assert estimate_fee(236, 0.5) == 118
    assert estimate_fee(100, 1) == 100


def test_resolve_key(key):
    """Test keys and WIF strings both resolve"""
    assert resolve_key(key) is key
    assert resolve_key(key.to_wif()).get_pubkey() == key.get_pubkey()
    with pytest.raises(scriptlab.ContextError):
        resolve_key("garbage")


def test_build_lock_transaction(key):
    """Test locking coins into a hash puzzle with change"""
    source = _funded(key)
    result = scriptlab.build_lock_transaction(key, source, 0, HELLO_LOCK, 1000, 0.5)

    assert result.fee == 118
    assert result.size == len(result.hex) // 2
    assert result.fee_rate == round(118 / result.size, 2)

    tx = scriptlab.Transaction.from_hex(result.hex)
    assert result.txid == tx.txid
    assert len(tx.vin) == 1
    assert tx.vin[0].prevout.txid == scriptlab.parse_txid(source)
    assert tx.vin[0].sequence == 0xFFFFFFFF
    assert tx.vout[0].value == 1000
    assert tx.vout[0].script_pubkey.to_asm() == HELLO_LOCK
    assert tx.vout[1].value == 98882
    assert tx.vout[1].script_pubkey == p2pkh_lock(key.get_pubkey_hash())
    assert 100000 - tx.get_value_out() == result.fee

    spend = scriptlab.validate_transaction_spend(source, result.hex)
    assert spend.valid, spend.error


def test_build_lock_transaction_wif_and_change_address(key, destination):
    """Test a WIF key and an explicit change address"""
    result = scriptlab.build_lock_transaction(
        key.to_wif(), _funded(key), 0, HELLO_LOCK, 1000, 0.5, destination
    )
    tx = scriptlab.Transaction.from_hex(result.hex)
    assert tx.vout[1].script_pubkey == p2pkh_lock(destination)


def test_build_lock_transaction_dust_change(key):
    """Test change at or below the dust threshold goes to the fee"""
    source = _funded(key, 1000 + 118 + config.DUST_THRESHOLD)
    result = scriptlab.build_lock_transaction(key, source, 0, HELLO_LOCK, 1000, 0.5)
    tx = scriptlab.Transaction.from_hex(result.hex)
    assert len(tx.vout) == 1
    assert result.fee == 118 + config.DUST_THRESHOLD


def test_build_lock_transaction_errors(key):
    """Test ownership and funds checks"""
    source = _funded(key)
    with pytest.raises(scriptlab.InsufficientFundsError, match="Insufficient funds"):
        scriptlab.build_lock_transaction(key, source, 0, HELLO_LOCK, 100000, 0.5)

    with pytest.raises(scriptlab.OwnershipError):
        scriptlab.build_lock_transaction(scriptlab.Key.from_secret(3), source, 0, HELLO_LOCK, 1000)

    with pytest.raises(scriptlab.OwnershipError, match="P2PKH"):
        scriptlab.build_lock_transaction(key, _locked("OP_TRUE", 100000), 0, HELLO_LOCK, 1000)

    with pytest.raises(scriptlab.OutOfRangeError):
        scriptlab.build_lock_transaction(key, source, 1, HELLO_LOCK, 1000)

    with pytest.raises(scriptlab.ParseError):
        scriptlab.build_lock_transaction(key, source, 0, "OP_NOTANOPCODE", 1000)


def test_build_unlock_transaction(destination):
    """Test spending a hash puzzle with its preimage"""
    source = _locked(HELLO_LOCK, 100000)
    result = scriptlab.build_unlock_transaction(source, 0, "68656c6c6f", destination, 0.5)

    assert result.fee == 50
    tx = scriptlab.Transaction.from_hex(result.hex)
    assert tx.vin[0].script_sig.to_asm() == "68656c6c6f"
    assert tx.vin[0].sequence == 0xFFFFFFFF
    assert tx.lock_time == 0
    assert tx.vout[0].value == 100000 - 50
    assert tx.vout[0].script_pubkey == p2pkh_lock(destination)

    spend = scriptlab.validate_transaction_spend(source, result.hex)
    assert spend.valid, spend.error


def test_build_unlock_transaction_pays_key(key):
    """Test the payout defaults to the key's address"""
    source = _locked(HELLO_LOCK, 100000)
    result = scriptlab.build_unlock_transaction(source, 0, "68656c6c6f", key=key)
    tx = scriptlab.Transaction.from_hex(result.hex)
    assert tx.vout[0].script_pubkey == p2pkh_lock(key.get_pubkey_hash())

    with pytest.raises(scriptlab.ContextError):
        scriptlab.build_unlock_transaction(source, 0, "68656c6c6f")


def test_build_unlock_transaction_errors(destination):
    """Test empty unlocks and dust payouts"""
    with pytest.raises(scriptlab.ParseError):
        scriptlab.build_unlock_transaction(_locked(HELLO_LOCK, 100000), 0, "", destination)

    with pytest.raises(scriptlab.DustError, match="dust"):
        scriptlab.build_unlock_transaction(_locked(HELLO_LOCK, 500), 0, "68656c6c6f", destination, 0.5)

    result = scriptlab.build_unlock_transaction(_locked(HELLO_LOCK, 600), 0, "68656c6c6f", destination, 0.5)
    assert scriptlab.Transaction.from_hex(result.hex).vout[0].value == 550

    with pytest.raises(scriptlab.ContextError):
        scriptlab.build_unlock_transaction(_locked(HELLO_LOCK, 100000), 0, "68656c6c6f", "not-an-address")


def test_build_unlock_transaction_with_lock_time(destination):
    """Test nLockTime is set and enforced through the sequence"""
    source = _locked("OP_TRUE", 100000)
    result = scriptlab.build_unlock_transaction_with_lock_time(
        source, 0, "", destination, 0.5, 800000
    )
    tx = scriptlab.Transaction.from_hex(result.hex)
    assert tx.lock_time == 800000
    assert tx.vin[0].sequence == 0xFFFFFFFE
    assert len(tx.vin[0].script_sig) == 0
    # An empty unlocking script is estimated as one byte
    assert result.fee == estimate_fee(10 + 40 + 1 + 34 + 8 + 1, 0.5)

    spend = scriptlab.validate_transaction_spend(source, result.hex)
    assert spend.valid, spend.error


def test_build_rpuzzle_unlock_transaction(destination):
    """Test spending generated R-puzzles with any key"""
    signer = scriptlab.Key.from_secret(0xDEAD)
    for variant in ("raw", "HASH160"):
        puzzle = scriptlab.generate_puzzle(variant)
        source = funding_transaction(scriptlab.Script(bytes.fromhex(puzzle.locking_hex))).to_hex()

        result = scriptlab.build_rpuzzle_unlock_transaction(
            signer, puzzle.k_hex, variant, source, 0, destination, 0.5
        )
        assert result.fee == 96

        tx = scriptlab.Transaction.from_hex(result.hex)
        sig, pubkey = [chunk.data for chunk in tx.vin[0].script_sig.chunks]
        assert pubkey == signer.get_pubkey()
        len_r = sig[3]
        assert int.from_bytes(sig[4 : 4 + len_r], "big") == int(puzzle.r_hex, 16)

        spend = scriptlab.validate_transaction_spend(source, result.hex)
        assert spend.valid, spend.error

        trace = scriptlab.run_trace_with_real_context(source, result.hex)
        assert trace.valid, trace.error


def test_build_rpuzzle_unlock_transaction_errors(destination):
    """Test wrong nonces and variants are refused"""
    signer = scriptlab.Key.from_secret(0xDEAD)
    puzzle = scriptlab.generate_puzzle()
    source = funding_transaction(scriptlab.Script(bytes.fromhex(puzzle.locking_hex))).to_hex()

    other = scriptlab.generate_puzzle()
    with pytest.raises(scriptlab.OwnershipError):
        scriptlab.build_rpuzzle_unlock_transaction(signer, other.k_hex, "raw", source, 0, destination)

    with pytest.raises(scriptlab.OwnershipError):
        scriptlab.build_rpuzzle_unlock_transaction(signer, puzzle.k_hex, "SHA256", source, 0, destination)

    with pytest.raises(scriptlab.ParseError):
        scriptlab.build_rpuzzle_unlock_transaction(signer, "zz", "raw", source, 0, destination)

    with pytest.raises(scriptlab.ParseError):
        scriptlab.build_rpuzzle_unlock_transaction(signer, "00", "raw", source, 0, destination)

    with pytest.raises(ValueError):
        scriptlab.build_rpuzzle_unlock_transaction(signer, puzzle.k_hex, "MD5", source, 0, destination)

    small = funding_transaction(scriptlab.Script(bytes.fromhex(puzzle.locking_hex)), 600).to_hex()
    with pytest.raises(scriptlab.DustError):
        scriptlab.build_rpuzzle_unlock_transaction(signer, puzzle.k_hex, "raw", small, 0, destination)


def _tamper_unlocking_script(monkeypatch, unlock_asm, times):
    """Make re-read transactions lose the given unlocking script a number of times"""
    real_from_bytes = scriptlab.Transaction.from_bytes
    unlock = scriptlab.parse_asm(unlock_asm)
    remaining = [times]

    def from_bytes(raw):
        tx = real_from_bytes(raw)
        if remaining[0] and tx.vin and tx.vin[0].script_sig == unlock:
            remaining[0] -= 1
            tx.vin[0].script_sig = scriptlab.parse_asm("OP_1")
        return tx

    monkeypatch.setattr(scriptlab.Transaction, "from_bytes", staticmethod(from_bytes))
    return remaining


def test_unlocking_script_reinstated(monkeypatch, caplog, destination):
    """Test a lost unlocking script is put back with a warning"""
    source = _locked(HELLO_LOCK, 100000)
    remaining = _tamper_unlocking_script(monkeypatch, "68656c6c6f", 1)

    with caplog.at_level(logging.WARNING, logger="scriptlab.builder"):
        result = scriptlab.build_unlock_transaction(source, 0, "68656c6c6f", destination, 0.5)

    assert remaining == [0]
    assert "Unlocking script mismatch" in caplog.text
    assert "Reinstating" in caplog.text
    tx = scriptlab.Transaction.from_hex(result.hex)
    assert tx.vin[0].script_sig.to_asm() == "68656c6c6f"


def test_unlocking_script_mismatch_persists(monkeypatch, destination):
    """Test a mismatch that survives reinstating is a consistency error"""
    source = _locked(HELLO_LOCK, 100000)
    _tamper_unlocking_script(monkeypatch, "68656c6c6f", 10)

    with pytest.raises(scriptlab.ConsistencyError):
        scriptlab.build_unlock_transaction(source, 0, "68656c6c6f", destination, 0.5)


def test_build_lock_transaction_uncompressed_wif(key):
    """Test the key is matched and signs through its compressed public key"""
    uncompressed = scriptlab.Key.from_secret(0xA11CE)
    uncompressed.compressed = False
    wif = uncompressed.to_wif()
    assert scriptlab.Key.from_wif(wif).compressed is False

    source = _funded(key)
    result = scriptlab.build_lock_transaction(wif, source, 0, HELLO_LOCK, 1000, 0.5)
    tx = scriptlab.Transaction.from_hex(result.hex)
    assert tx.vin[0].script_sig.chunks[1].data == key.get_pubkey(compressed=True)
    assert tx.vout[1].script_pubkey == p2pkh_lock(key.get_pubkey_hash())

    spend = scriptlab.validate_transaction_spend(source, result.hex)
    assert spend.valid, spend.error

    # Coins at the uncompressed address are not this key's P2PKH output
    legacy = funding_transaction(p2pkh_lock(uncompressed.get_pubkey_hash())).to_hex()
    with pytest.raises(scriptlab.OwnershipError):
        scriptlab.build_lock_transaction(wif, legacy, 0, HELLO_LOCK, 1000, 0.5)


def test_builder_parameter_errors(key, destination):
    """Test out of range amounts, fee rates and lock times are refused up front"""
    source = _funded(key)
    for amount in (0, -1):
        with pytest.raises(scriptlab.ParameterError, match="Amount"):
            scriptlab.build_lock_transaction(key, source, 0, HELLO_LOCK, amount, 0.5)

    with pytest.raises(scriptlab.ParameterError, match="Fee rate"):
        scriptlab.build_lock_transaction(key, source, 0, HELLO_LOCK, 1000, -1)

    locked = _locked("OP_TRUE", 100000)
    for lock_time in (-1, 2 ** 32):
        with pytest.raises(scriptlab.ParameterError, match="Lock time"):
            scriptlab.build_unlock_transaction_with_lock_time(locked, 0, "", destination, 0.5, lock_time)

    result = scriptlab.build_unlock_transaction_with_lock_time(locked, 0, "", destination, 0.5, 0xFFFFFFFF)
    assert scriptlab.Transaction.from_hex(result.hex).lock_time == 0xFFFFFFFF

    # Still a ValueError for callers that only know the builtin
    with pytest.raises(ValueError):
        scriptlab.build_unlock_transaction(locked, 0, "OP_1", destination, -0.5)
