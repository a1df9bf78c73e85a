"""
Scriptlab - BSV script playground engine

Parse, trace and validate locking/unlocking script pairs, build hash puzzles
and R-puzzles, and construct the transactions that lock and spend them.
"""

__version__ = "0.1.0"

from scriptlab.builder import (
    BuildResult,
    build_lock_transaction,
    build_rpuzzle_unlock_transaction,
    build_unlock_transaction,
    build_unlock_transaction_with_lock_time,
)
from scriptlab.crypto import Key, hash160, hash256, ripemd160, sha1, sha256
from scriptlab.errors import (
    AcceptanceError,
    ConsistencyError,
    ContextError,
    DustError,
    ExecutionError,
    FundsError,
    InsufficientFundsError,
    OutOfRangeError,
    OwnershipError,
    ParameterError,
    ParseError,
    ScriptlabError,
    ServiceError,
)
from scriptlab.interpreter import Spend, SpendContext
from scriptlab.puzzles import (
    HASH_TYPES,
    RPUZZLE_VARIANTS,
    HashPuzzle,
    RPuzzle,
    build_hash_puzzle,
    compute_hash,
    generate_puzzle,
)
from scriptlab.script import (
    Chunk,
    Script,
    detect_and_convert,
    from_hex,
    hex_to_asm,
    normalize_aliases,
    parse_asm,
    script_hex_preview,
    to_asm,
    to_hex,
)
from scriptlab.services import broadcast_transaction, fetch_raw_transaction, fetch_utxos
from scriptlab.templates import OPCODE_REFERENCE, TEMPLATES, Template, get_template
from scriptlab.tracer import (
    ExecutionStep,
    TraceResult,
    ValidationResult,
    extract_locking_script,
    extract_unlocking_script,
    parse_txid,
    run_trace,
    run_trace_with_real_context,
    validate,
    validate_transaction_spend,
)
from scriptlab.transaction import OutPoint, Transaction, TxIn, TxOut
from scriptlab.util import hex_to_text, is_hex, text_to_hex

__all__ = [
    # Script codec
    "Chunk",
    "Script",
    "detect_and_convert",
    "from_hex",
    "hex_to_asm",
    "normalize_aliases",
    "parse_asm",
    "script_hex_preview",
    "to_asm",
    "to_hex",
    # Puzzles
    "HASH_TYPES",
    "RPUZZLE_VARIANTS",
    "HashPuzzle",
    "RPuzzle",
    "build_hash_puzzle",
    "compute_hash",
    "generate_puzzle",
    # Tracer
    "ExecutionStep",
    "Spend",
    "SpendContext",
    "TraceResult",
    "ValidationResult",
    "extract_locking_script",
    "extract_unlocking_script",
    "parse_txid",
    "run_trace",
    "run_trace_with_real_context",
    "validate",
    "validate_transaction_spend",
    # Builder
    "BuildResult",
    "build_lock_transaction",
    "build_rpuzzle_unlock_transaction",
    "build_unlock_transaction",
    "build_unlock_transaction_with_lock_time",
    # Transaction
    "OutPoint",
    "Transaction",
    "TxIn",
    "TxOut",
    # Crypto
    "Key",
    "hash160",
    "hash256",
    "ripemd160",
    "sha1",
    "sha256",
    # Reference data
    "OPCODE_REFERENCE",
    "TEMPLATES",
    "Template",
    "get_template",
    # Services
    "broadcast_transaction",
    "fetch_raw_transaction",
    "fetch_utxos",
    # Helpers
    "hex_to_text",
    "is_hex",
    "text_to_hex",
    # Errors
    "AcceptanceError",
    "ConsistencyError",
    "ContextError",
    "DustError",
    "ExecutionError",
    "FundsError",
    "InsufficientFundsError",
    "OutOfRangeError",
    "OwnershipError",
    "ParameterError",
    "ParseError",
    "ScriptlabError",
    "ServiceError",
]
