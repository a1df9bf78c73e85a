"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Steppable script interpreter with BSV post-Genesis rules
"""

from typing import List, Optional, Union

from scriptlab import config
from scriptlab.crypto import CURVE_ORDER, Key, hash160, hash256, ripemd160, sha1, sha256
from scriptlab.errors import ExecutionError
from scriptlab.script import (
    OP_0NOTEQUAL,
    OP_1,
    OP_1ADD,
    OP_1NEGATE,
    OP_1SUB,
    OP_2DIV,
    OP_2DROP,
    OP_2DUP,
    OP_2MUL,
    OP_2OVER,
    OP_2ROT,
    OP_2SWAP,
    OP_3DUP,
    OP_16,
    OP_ABS,
    OP_ADD,
    OP_AND,
    OP_BIN2NUM,
    OP_BOOLAND,
    OP_BOOLOR,
    OP_CAT,
    OP_CHECKMULTISIG,
    OP_CHECKMULTISIGVERIFY,
    OP_CHECKSIG,
    OP_CHECKSIGVERIFY,
    OP_CODESEPARATOR,
    OP_DEPTH,
    OP_DIV,
    OP_DROP,
    OP_DUP,
    OP_ELSE,
    OP_ENDIF,
    OP_EQUAL,
    OP_EQUALVERIFY,
    OP_FROMALTSTACK,
    OP_GREATERTHAN,
    OP_GREATERTHANOREQUAL,
    OP_HASH160,
    OP_HASH256,
    OP_IF,
    OP_IFDUP,
    OP_INVERT,
    OP_LESSTHAN,
    OP_LESSTHANOREQUAL,
    OP_LSHIFT,
    OP_MAX,
    OP_MIN,
    OP_MOD,
    OP_MUL,
    OP_NEGATE,
    OP_NIP,
    OP_NOP,
    OP_NOP1,
    OP_NOP10,
    OP_NOT,
    OP_NOTIF,
    OP_NUM2BIN,
    OP_NUMEQUAL,
    OP_NUMEQUALVERIFY,
    OP_NUMNOTEQUAL,
    OP_OR,
    OP_OVER,
    OP_PICK,
    OP_RETURN,
    OP_RIPEMD160,
    OP_ROLL,
    OP_ROT,
    OP_RSHIFT,
    OP_SHA1,
    OP_SHA256,
    OP_SIZE,
    OP_SPLIT,
    OP_SUB,
    OP_SWAP,
    OP_TOALTSTACK,
    OP_TUCK,
    OP_VERIFY,
    OP_WITHIN,
    OP_XOR,
    Chunk,
    Script,
    as_script,
    opcode_name,
)
from scriptlab.transaction import (
    SIGHASH_ANYONECANPAY,
    SIGHASH_FORKID,
    SIGHASH_SINGLE,
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
    signature_hash,
)

UNLOCKING_SCRIPT = "UnlockingScript"
LOCKING_SCRIPT = "LockingScript"

_HALF_CURVE_ORDER = CURVE_ORDER // 2


class ScriptError(ExecutionError):
    """Script evaluation failed"""

    pass


class InvalidStackOperation(ScriptError):
    pass


class VerifyFailed(ScriptError):
    pass


class EqualVerifyFailed(VerifyFailed):
    pass


class InvalidOpcode(ScriptError):
    pass


class DisabledOpcode(ScriptError):
    pass


class UnbalancedConditional(ScriptError):
    pass


class InvalidSplit(ScriptError):
    pass


class InvalidOperandSize(ScriptError):
    pass


class DivisionByZero(ScriptError):
    pass


class InvalidNumber(ScriptError):
    pass


class InvalidSignature(ScriptError):
    pass


class InvalidPublicKeyEncoding(ScriptError):
    pass


class NullFailError(ScriptError):
    pass


class NullDummyError(ScriptError):
    pass


class PushOnlyError(ScriptError):
    pass


class CleanStackError(ScriptError):
    pass


# Number helpers
def bignum_from_bytes(vch: bytes) -> int:
    """Decode a little-endian sign-magnitude number"""
    if not vch:
        return 0
    result = int.from_bytes(bytes(vch[:-1]) + bytes([vch[-1] & 0x7F]), "little")
    return -result if vch[-1] & 0x80 else result


def bignum_to_bytes(n: int) -> bytes:
    """Minimal little-endian sign-magnitude encoding; zero is empty"""
    if n == 0:
        return b""

    abs_n = abs(n)
    bytes_list = bytearray()
    while abs_n > 0:
        bytes_list.append(abs_n & 0xFF)
        abs_n >>= 8

    if bytes_list[-1] & 0x80:
        bytes_list.append(0x80 if n < 0 else 0x00)
    elif n < 0:
        bytes_list[-1] |= 0x80
    return bytes(bytes_list)


def is_minimally_encoded(vch: bytes) -> bool:
    """True if vch has no superfluous trailing zero byte"""
    if not vch:
        return True
    if vch[-1] & 0x7F:
        return True
    # A lone 0x00 or 0x80 is negative or positive zero, both non-minimal.
    # Otherwise the padding byte is only allowed to make room for the sign bit.
    return len(vch) > 1 and bool(vch[-2] & 0x80)


def cast_to_bool(vch: bytes) -> bool:
    """Any non-zero byte is true, except a sign bit alone on the last byte"""
    for i, b in enumerate(vch):
        if b != 0:
            return not (i == len(vch) - 1 and b == 0x80)
    return False


def num_to_fixed_size(n: int, size: int) -> bytes:
    """Encode n in exactly size bytes, moving the sign bit to the last byte"""
    minimal = bignum_to_bytes(n)
    if len(minimal) > size:
        raise InvalidOperandSize(f"Cannot encode {n} in {size} bytes")
    if len(minimal) == size:
        return minimal
    magnitude = bytearray(bignum_to_bytes(abs(n)))
    magnitude.extend(bytes(size - len(magnitude)))
    if n < 0:
        magnitude[-1] |= 0x80
    return bytes(magnitude)


def bitcoin_div(a: int, b: int) -> int:
    # Rounded towards zero
    result = abs(a) // abs(b)
    return -result if (a < 0) != (b < 0) else result


def bitcoin_mod(a: int, b: int) -> int:
    # Takes the sign of the dividend
    result = abs(a) % abs(b)
    return -result if a < 0 else result


def shift_left(value: bytes, count: int) -> bytes:
    """Logical shift of a big-endian bit string, keeping its size"""
    if not value:
        return value
    if count >= 8 * len(value):
        return bytes(len(value))
    mask = (1 << (8 * len(value))) - 1
    shifted = (int.from_bytes(value, "big") << count) & mask
    return shifted.to_bytes(len(value), "big")


def shift_right(value: bytes, count: int) -> bytes:
    if not value:
        return value
    if count >= 8 * len(value):
        return bytes(len(value))
    shifted = int.from_bytes(value, "big") >> count
    return shifted.to_bytes(len(value), "big")


# Signature and key encoding checks
def is_valid_signature_encoding(sig: bytes) -> bool:
    """
    Strict DER check (BIP66) of a signature followed by its hash type byte

    Format: 0x30 [total-length] 0x02 [R-length] [R] 0x02 [S-length] [S] [sighash]
    """
    if len(sig) < 9 or len(sig) > 73:
        return False
    if sig[0] != 0x30 or sig[1] != len(sig) - 3:
        return False

    len_r = sig[3]
    if 5 + len_r >= len(sig):
        return False
    len_s = sig[5 + len_r]
    if len_r + len_s + 7 != len(sig):
        return False

    if sig[2] != 0x02 or len_r == 0 or sig[4] & 0x80:
        return False
    if len_r > 1 and sig[4] == 0x00 and not sig[5] & 0x80:
        return False

    if sig[len_r + 4] != 0x02 or len_s == 0 or sig[len_r + 6] & 0x80:
        return False
    if len_s > 1 and sig[len_r + 6] == 0x00 and not sig[len_r + 7] & 0x80:
        return False
    return True


def is_low_s(sig: bytes) -> bool:
    len_r = sig[3]
    len_s = sig[5 + len_r]
    s = int.from_bytes(sig[6 + len_r : 6 + len_r + len_s], "big")
    return 0 < s <= _HALF_CURVE_ORDER


def is_defined_hash_type(sig: bytes) -> bool:
    base_type = sig[-1] & ~(SIGHASH_ANYONECANPAY | SIGHASH_FORKID)
    return 1 <= base_type <= SIGHASH_SINGLE


def check_signature_encoding(sig: bytes):
    """Raise InvalidSignature unless sig is empty or strictly encoded"""
    if not sig:
        return
    if not is_valid_signature_encoding(sig):
        raise InvalidSignature("Signature is not strict DER")
    if not is_low_s(sig):
        raise InvalidSignature("Signature S value is not low")
    if not is_defined_hash_type(sig):
        raise InvalidSignature(f"Undefined signature hash type 0x{sig[-1]:02x}")
    if not sig[-1] & SIGHASH_FORKID:
        raise InvalidSignature("Signature hash type must include SIGHASH_FORKID")


def check_pubkey_encoding(pubkey: bytes):
    if len(pubkey) == 33 and pubkey[0] in (0x02, 0x03):
        return
    if len(pubkey) == 65 and pubkey[0] == 0x04:
        return
    raise InvalidPublicKeyEncoding("Public key is not in compressed or uncompressed SEC format")


class SpendContext:
    """
    Transaction context of the input being evaluated

    Signature opcodes rebuild the spending transaction from these fields.
    The input under evaluation is inserted into other_inputs at input_index.
    """

    def __init__(
        self,
        source_txid: str = config.NULL_TXID,
        source_output_index: int = 0,
        source_satoshis: int = config.SYNTHETIC_SATOSHIS,
        transaction_version: int = 1,
        other_inputs: Optional[List[TxIn]] = None,
        outputs: Optional[List[TxOut]] = None,
        input_index: int = 0,
        input_sequence: int = config.SEQUENCE_FINAL,
        lock_time: int = 0,
    ):
        self.source_txid = source_txid
        self.source_output_index = source_output_index
        self.source_satoshis = source_satoshis
        self.transaction_version = transaction_version
        self.other_inputs = list(other_inputs) if other_inputs else []
        self.outputs = list(outputs) if outputs else []
        self.input_index = input_index
        self.input_sequence = input_sequence
        self.lock_time = lock_time

    @classmethod
    def synthetic(cls) -> "SpendContext":
        """Placeholder context for scripts traced without real transactions"""
        return cls()

    @classmethod
    def from_transactions(
        cls,
        source_tx: Transaction,
        spending_tx: Transaction,
        source_output_index: int = 0,
        spending_input_index: int = 0,
    ) -> "SpendContext":
        source_output = source_tx.output(source_output_index)
        spending_input = spending_tx.input(spending_input_index)
        other_inputs = [
            txin for i, txin in enumerate(spending_tx.vin) if i != spending_input_index
        ]
        return cls(
            source_txid=source_tx.txid,
            source_output_index=source_output_index,
            source_satoshis=source_output.value,
            transaction_version=spending_tx.version,
            other_inputs=other_inputs,
            outputs=spending_tx.vout,
            input_index=spending_input_index,
            input_sequence=spending_input.sequence,
            lock_time=spending_tx.lock_time,
        )

    def to_transaction(self, unlocking_script: Script) -> Transaction:
        """Spending transaction with unlocking_script at input_index"""
        tx = Transaction(self.transaction_version, self.lock_time)
        tx.vin = list(self.other_inputs)
        txin = TxIn(
            OutPoint.from_txid(self.source_txid, self.source_output_index),
            unlocking_script,
            self.input_sequence,
        )
        tx.vin.insert(self.input_index, txin)
        tx.vout = list(self.outputs)
        return tx

    def __repr__(self):
        return (
            f"SpendContext(source={self.source_txid[:12]}:{self.source_output_index}, "
            f"satoshis={self.source_satoshis}, input_index={self.input_index})"
        )


class Condition:
    """An open IF/NOTIF block"""

    __slots__ = ("opcode", "execute", "seen_else")

    def __init__(self, opcode: int, execute: bool):
        self.opcode = opcode
        self.execute = execute
        self.seen_else = False


class Spend:
    """
    Evaluates an unlocking script followed by a locking script, one chunk
    per call to step()

    The program counter indexes chunks of the script named by `context`.
    """

    def __init__(
        self,
        locking_script: Union[str, Script],
        unlocking_script: Union[str, Script],
        context: Optional[SpendContext] = None,
    ):
        self.locking_script = as_script(locking_script)
        self.unlocking_script = as_script(unlocking_script)
        self.spend_context = context or SpendContext.synthetic()

        # Decoding up front surfaces ParseError before anything runs
        self._chunks = {
            UNLOCKING_SCRIPT: self.unlocking_script.chunks,
            LOCKING_SCRIPT: self.locking_script.chunks,
        }
        self._locking_offsets = _chunk_offsets(self.locking_script)

        self.stack: List[bytes] = []
        self.alt_stack: List[bytes] = []
        self.conditions: List[Condition] = []
        self.context = UNLOCKING_SCRIPT
        self.program_counter = 0
        self.code_separator: Optional[int] = None
        self._transaction: Optional[Transaction] = None

    @property
    def current_chunks(self) -> List[Chunk]:
        return self._chunks[self.context]

    def step(self) -> bool:
        """
        Execute the next chunk

        Returns False once the locking script is exhausted. When the unlocking
        script runs out, a call performs only the switch to the locking script.
        """
        chunks = self.current_chunks
        if self.program_counter >= len(chunks):
            if self.context == LOCKING_SCRIPT:
                return False
            self._enter_locking_script()
            return True

        chunk = chunks[self.program_counter]
        self.program_counter += 1
        self._execute(chunk)
        return True

    def validate(self) -> bool:
        """Run to completion and apply the acceptance rules; raise on failure"""
        if not self.unlocking_script.is_push_only():
            raise PushOnlyError("Unlocking script must contain only push operations")

        while self.step():
            pass

        if self.conditions:
            raise UnbalancedConditional("Unterminated conditional at end of locking script")
        if not self.stack or not cast_to_bool(self.stack[-1]):
            raise VerifyFailed("The top stack element must be truthy after script evaluation.")
        if len(self.stack) != 1:
            raise CleanStackError(
                f"The clean stack rule requires exactly one item, found {len(self.stack)}."
            )
        return True

    def _enter_locking_script(self):
        if self.conditions:
            raise UnbalancedConditional("Unterminated conditional at end of unlocking script")
        self.context = LOCKING_SCRIPT
        self.program_counter = 0
        self.alt_stack = []
        self.code_separator = None

    def _script_code(self) -> Script:
        """Locking script from just after the last executed OP_CODESEPARATOR"""
        if self.code_separator is None:
            return self.locking_script
        start = self._locking_offsets[self.code_separator + 1]
        return Script(bytes(self.locking_script.data[start:]))

    def _transaction_to_sign(self) -> Transaction:
        if self._transaction is None:
            self._transaction = self.spend_context.to_transaction(self.unlocking_script)
        return self._transaction

    def _check_sig(self, sig: bytes, pubkey: bytes, script_code: Script) -> bool:
        if not sig:
            return False
        digest = signature_hash(
            self._transaction_to_sign(),
            self.spend_context.input_index,
            script_code,
            self.spend_context.source_satoshis,
            sig[-1],
        )
        return Key.verify(pubkey, digest, sig[:-1])

    def _require(self, depth: int, op: int):
        if len(self.stack) < depth:
            raise InvalidStackOperation(
                f"{opcode_name(op)} requires {depth} stack items, found {len(self.stack)}"
            )

    def _pop(self) -> bytes:
        return self.stack.pop()

    def _number(self, index: int) -> int:
        vch = self.stack[index]
        if len(vch) > config.MAX_SCRIPT_NUM_LENGTH:
            raise InvalidNumber(
                f"Number of {len(vch)} bytes exceeds the {config.MAX_SCRIPT_NUM_LENGTH} byte limit"
            )
        if not is_minimally_encoded(vch):
            raise InvalidNumber(f"Number {vch.hex()} is not minimally encoded")
        return bignum_from_bytes(vch)

    def _check_element_size(self, size: int, opcode: int):
        if size > config.MAX_SCRIPT_ELEMENT_SIZE:
            raise InvalidOperandSize(
                f"{opcode_name(opcode)} result of {size} bytes exceeds the "
                f"{config.MAX_SCRIPT_ELEMENT_SIZE} byte element limit"
            )

    def _execute(self, chunk: Chunk):
        stack = self.stack
        opcode = chunk.op
        f_exec = all(condition.execute for condition in self.conditions)

        if self.context == UNLOCKING_SCRIPT and opcode > OP_16:
            raise PushOnlyError(
                f"Unlocking script may only push data, found {opcode_name(opcode) or hex(opcode)}"
            )

        if opcode in (OP_2MUL, OP_2DIV) and f_exec:
            raise DisabledOpcode(f"{opcode_name(opcode)} is disabled")

        # Handle push data
        if chunk.is_push:
            if f_exec:
                stack.append(chunk.data)
            return
        if not f_exec and opcode not in (OP_IF, OP_NOTIF, OP_ELSE, OP_ENDIF):
            return

        # Push value opcodes
        if opcode == OP_1NEGATE or OP_1 <= opcode <= OP_16:
            stack.append(bignum_to_bytes(opcode - (OP_1 - 1)))

        # Control opcodes
        elif opcode == OP_NOP or OP_NOP1 <= opcode <= OP_NOP10:
            pass
        elif opcode in (OP_IF, OP_NOTIF):
            f_value = False
            if f_exec:
                self._require(1, opcode)
                f_value = cast_to_bool(self._pop())
                if opcode == OP_NOTIF:
                    f_value = not f_value
            self.conditions.append(Condition(opcode, f_value))
        elif opcode == OP_ELSE:
            if not self.conditions or self.conditions[-1].seen_else:
                raise UnbalancedConditional("OP_ELSE without a matching OP_IF")
            self.conditions[-1].execute = not self.conditions[-1].execute
            self.conditions[-1].seen_else = True
        elif opcode == OP_ENDIF:
            if not self.conditions:
                raise UnbalancedConditional("OP_ENDIF without a matching OP_IF")
            self.conditions.pop()
        elif opcode == OP_VERIFY:
            self._require(1, opcode)
            if not cast_to_bool(stack[-1]):
                raise VerifyFailed("OP_VERIFY failed: top stack value is false")
            stack.pop()
        elif opcode == OP_RETURN:
            # Ends the current script successfully
            self.program_counter = len(self.current_chunks)
            self.conditions = []

        # Stack ops
        elif opcode == OP_TOALTSTACK:
            self._require(1, opcode)
            self.alt_stack.append(self._pop())
        elif opcode == OP_FROMALTSTACK:
            if not self.alt_stack:
                raise InvalidStackOperation("OP_FROMALTSTACK requires a non-empty alt stack")
            stack.append(self.alt_stack.pop())
        elif opcode == OP_2DROP:
            self._require(2, opcode)
            del stack[-2:]
        elif opcode == OP_2DUP:
            self._require(2, opcode)
            stack.extend(stack[-2:])
        elif opcode == OP_3DUP:
            self._require(3, opcode)
            stack.extend(stack[-3:])
        elif opcode == OP_2OVER:
            self._require(4, opcode)
            stack.extend(stack[-4:-2])
        elif opcode == OP_2ROT:
            self._require(6, opcode)
            moved = stack[-6:-4]
            del stack[-6:-4]
            stack.extend(moved)
        elif opcode == OP_2SWAP:
            self._require(4, opcode)
            stack[-4:] = stack[-2:] + stack[-4:-2]
        elif opcode == OP_IFDUP:
            self._require(1, opcode)
            if cast_to_bool(stack[-1]):
                stack.append(stack[-1])
        elif opcode == OP_DEPTH:
            stack.append(bignum_to_bytes(len(stack)))
        elif opcode == OP_DROP:
            self._require(1, opcode)
            stack.pop()
        elif opcode == OP_DUP:
            self._require(1, opcode)
            stack.append(stack[-1])
        elif opcode == OP_NIP:
            self._require(2, opcode)
            del stack[-2]
        elif opcode == OP_OVER:
            self._require(2, opcode)
            stack.append(stack[-2])
        elif opcode in (OP_PICK, OP_ROLL):
            self._require(2, opcode)
            n = self._number(-1)
            stack.pop()
            if n < 0 or n >= len(stack):
                raise InvalidStackOperation(
                    f"{opcode_name(opcode)} index {n} out of range for stack depth {len(stack)}"
                )
            if opcode == OP_PICK:
                stack.append(stack[-n - 1])
            else:
                stack.append(stack.pop(-n - 1))
        elif opcode == OP_ROT:
            self._require(3, opcode)
            stack.append(stack.pop(-3))
        elif opcode == OP_SWAP:
            self._require(2, opcode)
            stack[-2], stack[-1] = stack[-1], stack[-2]
        elif opcode == OP_TUCK:
            self._require(2, opcode)
            stack.insert(-2, stack[-1])

        # Splice ops
        elif opcode == OP_CAT:
            self._require(2, opcode)
            self._check_element_size(len(stack[-2]) + len(stack[-1]), opcode)
            vch = stack.pop()
            stack[-1] = stack[-1] + vch
        elif opcode == OP_SPLIT:
            self._require(2, opcode)
            n = self._number(-1)
            data = stack[-2]
            if n < 0 or n > len(data):
                raise InvalidSplit(f"Cannot split item of length {len(data)} at position {n}")
            stack[-2] = data[:n]
            stack[-1] = data[n:]
        elif opcode == OP_NUM2BIN:
            self._require(2, opcode)
            size = self._number(-1)
            if size < 0:
                raise InvalidOperandSize(f"Invalid OP_NUM2BIN size {size}")
            self._check_element_size(size, opcode)
            stack.pop()
            stack[-1] = num_to_fixed_size(bignum_from_bytes(stack[-1]), size)
        elif opcode == OP_BIN2NUM:
            self._require(1, opcode)
            stack[-1] = bignum_to_bytes(bignum_from_bytes(stack[-1]))
        elif opcode == OP_SIZE:
            self._require(1, opcode)
            stack.append(bignum_to_bytes(len(stack[-1])))

        # Bitwise logic
        elif opcode == OP_INVERT:
            self._require(1, opcode)
            stack[-1] = bytes(b ^ 0xFF for b in stack[-1])
        elif opcode in (OP_AND, OP_OR, OP_XOR):
            self._require(2, opcode)
            vch1, vch2 = stack[-2], stack[-1]
            if len(vch1) != len(vch2):
                raise InvalidOperandSize(
                    f"{opcode_name(opcode)} operands must have the same size "
                    f"({len(vch1)} != {len(vch2)})"
                )
            if opcode == OP_AND:
                result = bytes(a & b for a, b in zip(vch1, vch2))
            elif opcode == OP_OR:
                result = bytes(a | b for a, b in zip(vch1, vch2))
            else:
                result = bytes(a ^ b for a, b in zip(vch1, vch2))
            stack.pop()
            stack[-1] = result
        elif opcode in (OP_EQUAL, OP_EQUALVERIFY):
            self._require(2, opcode)
            f_equal = stack.pop() == stack.pop()
            if opcode == OP_EQUALVERIFY:
                if not f_equal:
                    raise EqualVerifyFailed("OP_EQUALVERIFY failed: top two items are not equal")
            else:
                stack.append(b"\x01" if f_equal else b"")
        elif opcode in (OP_LSHIFT, OP_RSHIFT):
            self._require(2, opcode)
            n = self._number(-1)
            if n < 0:
                raise InvalidNumber(f"{opcode_name(opcode)} count must not be negative")
            stack.pop()
            if opcode == OP_LSHIFT:
                stack[-1] = shift_left(stack[-1], n)
            else:
                stack[-1] = shift_right(stack[-1], n)

        # Numeric
        elif opcode in (OP_1ADD, OP_1SUB, OP_NEGATE, OP_ABS, OP_NOT, OP_0NOTEQUAL):
            self._require(1, opcode)
            bn = self._number(-1)
            if opcode == OP_1ADD:
                bn += 1
            elif opcode == OP_1SUB:
                bn -= 1
            elif opcode == OP_NEGATE:
                bn = -bn
            elif opcode == OP_ABS:
                bn = abs(bn)
            elif opcode == OP_NOT:
                bn = int(bn == 0)
            else:
                bn = int(bn != 0)
            stack[-1] = bignum_to_bytes(bn)
        elif OP_ADD <= opcode <= OP_MAX:
            self._require(2, opcode)
            bn1 = self._number(-2)
            bn2 = self._number(-1)
            if opcode == OP_ADD:
                bn = bn1 + bn2
            elif opcode == OP_SUB:
                bn = bn1 - bn2
            elif opcode == OP_MUL:
                bn = bn1 * bn2
            elif opcode in (OP_DIV, OP_MOD):
                if bn2 == 0:
                    raise DivisionByZero(
                        "Division by zero" if opcode == OP_DIV else "Modulo by zero"
                    )
                bn = bitcoin_div(bn1, bn2) if opcode == OP_DIV else bitcoin_mod(bn1, bn2)
            elif opcode == OP_BOOLAND:
                bn = int(bn1 != 0 and bn2 != 0)
            elif opcode == OP_BOOLOR:
                bn = int(bn1 != 0 or bn2 != 0)
            elif opcode in (OP_NUMEQUAL, OP_NUMEQUALVERIFY):
                bn = int(bn1 == bn2)
            elif opcode == OP_NUMNOTEQUAL:
                bn = int(bn1 != bn2)
            elif opcode == OP_LESSTHAN:
                bn = int(bn1 < bn2)
            elif opcode == OP_GREATERTHAN:
                bn = int(bn1 > bn2)
            elif opcode == OP_LESSTHANOREQUAL:
                bn = int(bn1 <= bn2)
            elif opcode == OP_GREATERTHANOREQUAL:
                bn = int(bn1 >= bn2)
            elif opcode == OP_MIN:
                bn = min(bn1, bn2)
            else:
                bn = max(bn1, bn2)
            del stack[-2:]
            if opcode == OP_NUMEQUALVERIFY:
                if not bn:
                    raise VerifyFailed("OP_NUMEQUALVERIFY failed: numbers are not equal")
            else:
                stack.append(bignum_to_bytes(bn))
        elif opcode == OP_WITHIN:
            # (x min max -- out)
            self._require(3, opcode)
            bn = self._number(-3)
            bn_min = self._number(-2)
            bn_max = self._number(-1)
            del stack[-3:]
            stack.append(b"\x01" if bn_min <= bn < bn_max else b"")

        # Crypto
        elif opcode in (OP_RIPEMD160, OP_SHA1, OP_SHA256, OP_HASH160, OP_HASH256):
            self._require(1, opcode)
            vch = stack.pop()
            if opcode == OP_RIPEMD160:
                stack.append(ripemd160(vch))
            elif opcode == OP_SHA1:
                stack.append(sha1(vch))
            elif opcode == OP_SHA256:
                stack.append(sha256(vch))
            elif opcode == OP_HASH160:
                stack.append(hash160(vch))
            else:
                stack.append(hash256(vch))
        elif opcode == OP_CODESEPARATOR:
            self.code_separator = self.program_counter - 1
        elif opcode in (OP_CHECKSIG, OP_CHECKSIGVERIFY):
            self._require(2, opcode)
            sig, pubkey = stack[-2], stack[-1]
            check_signature_encoding(sig)
            check_pubkey_encoding(pubkey)
            f_success = self._check_sig(sig, pubkey, self._script_code())
            if not f_success and sig:
                raise NullFailError("Signature check failed with a non-empty signature")
            del stack[-2:]
            if opcode == OP_CHECKSIGVERIFY:
                if not f_success:
                    raise VerifyFailed("OP_CHECKSIGVERIFY failed")
            else:
                stack.append(b"\x01" if f_success else b"")
        elif opcode in (OP_CHECKMULTISIG, OP_CHECKMULTISIGVERIFY):
            self._check_multisig(opcode)

        else:
            # OP_VER, OP_VERIF, OP_VERNOTIF, OP_RESERVED* and unassigned bytes
            raise InvalidOpcode(f"Invalid opcode {opcode_name(opcode) or hex(opcode)}")

    def _check_multisig(self, opcode: int):
        # ([dummy] [sig ...] sig_count [pubkey ...] key_count -- bool)
        stack = self.stack
        self._require(1, opcode)
        key_count = self._number(-1)
        if key_count < 0:
            raise InvalidStackOperation(f"Public key count {key_count} is negative")
        self._require(key_count + 2, opcode)
        sig_count = self._number(-(key_count + 2))
        if not 0 <= sig_count <= key_count:
            raise InvalidStackOperation(
                f"Signature count {sig_count} outside 0 to {key_count}"
            )
        item_count = key_count + sig_count + 2
        # One extra item is consumed by a historical off-by-one
        self._require(item_count + 1, opcode)

        keys = stack[-(key_count + 1) : -1]
        sigs = stack[-item_count : -(key_count + 2)]
        script_code = self._script_code()

        # Both lists are consumed from the top of the stack down
        keys_remaining = keys[::-1]
        sigs_remaining = sigs[::-1]
        while sigs_remaining and len(keys_remaining) >= len(sigs_remaining):
            sig = sigs_remaining[0]
            pubkey = keys_remaining[0]
            check_signature_encoding(sig)
            check_pubkey_encoding(pubkey)
            if self._check_sig(sig, pubkey, script_code):
                sigs_remaining.pop(0)
            keys_remaining.pop(0)
        f_success = len(keys_remaining) >= len(sigs_remaining)

        if not f_success and any(sigs):
            raise NullFailError("Multisig check failed with a non-empty signature")
        if stack[-(item_count + 1)]:
            raise NullDummyError("OP_CHECKMULTISIG dummy element must be empty")

        del stack[-(item_count + 1) :]
        if opcode == OP_CHECKMULTISIGVERIFY:
            if not f_success:
                raise VerifyFailed("OP_CHECKMULTISIGVERIFY failed")
        else:
            stack.append(b"\x01" if f_success else b"")


def _chunk_offsets(script: Script) -> List[int]:
    """Byte offset of each chunk, plus the script length"""
    offsets = []
    pc = 0
    for _ in script.chunks:
        offsets.append(pc)
        _, pc, _, _ = script.get_op(pc)
    offsets.append(len(script.data))
    return offsets
