"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Step-by-step script tracing and spend validation
"""

from typing import List, Optional, Sequence, Tuple, Union

from scriptlab import config
from scriptlab.errors import (
    AcceptanceError,
    ExecutionError,
    OutOfRangeError,
    ParseError,
)
from scriptlab.interpreter import (
    UNLOCKING_SCRIPT,
    Spend,
    SpendContext,
    cast_to_bool,
)
from scriptlab.script import Chunk, Script, as_script, opcode_name
from scriptlab.transaction import Transaction
from scriptlab.util import get_logger

logger = get_logger(__name__)

SAFETY_LIMIT_MESSAGE = "Execution exceeded {:,} steps (safety limit)."
EMPTY_STACK_MESSAGE = "Stack empty after execution."
FALSY_TOP_MESSAGE = "Top of stack is not truthy."
CLEAN_STACK_MESSAGE = "Clean stack rule: expected 1 item, found {}."


class ExecutionStep:
    """Snapshot of the machine after one executed chunk"""

    __slots__ = ("step_number", "context", "opcode", "stack", "alt_stack", "error")

    def __init__(
        self,
        step_number: int,
        context: str,
        opcode: str,
        stack: Sequence[str],
        alt_stack: Sequence[str],
        error: Optional[str] = None,
    ):
        object.__setattr__(self, "step_number", step_number)
        object.__setattr__(self, "context", context)
        object.__setattr__(self, "opcode", opcode)
        object.__setattr__(self, "stack", tuple(stack))
        object.__setattr__(self, "alt_stack", tuple(alt_stack))
        object.__setattr__(self, "error", error)

    def __setattr__(self, name, value):
        raise AttributeError("ExecutionStep is immutable")

    def __repr__(self):
        return (
            f"ExecutionStep({self.step_number}, {self.context}, {self.opcode!r}, "
            f"stack={list(self.stack)}, error={self.error!r})"
        )


class TraceResult:
    """Every recorded step plus the verdict"""

    def __init__(
        self,
        steps: List[ExecutionStep],
        valid: bool,
        error: Optional[str] = None,
        final_stack: Sequence[str] = (),
    ):
        self.steps = steps
        self.valid = valid
        self.error = error
        self.final_stack = list(final_stack)

    def raise_for_error(self):
        """Raise ExecutionError or AcceptanceError if the trace failed"""
        if self.valid:
            return
        if self.steps and self.steps[-1].error is not None:
            raise ExecutionError(self.error)
        if self.error and self.error.startswith("Execution exceeded"):
            raise ExecutionError(self.error)
        raise AcceptanceError(self.error)

    def __repr__(self):
        return f"TraceResult(steps={len(self.steps)}, valid={self.valid}, error={self.error!r})"


class ValidationResult:
    """Verdict of a spend with the sizes of both scripts"""

    def __init__(
        self,
        valid: bool,
        error: Optional[str] = None,
        locking_hex: str = "",
        unlocking_hex: str = "",
        final_stack: Sequence[str] = (),
    ):
        self.valid = valid
        self.error = error
        self.locking_hex = locking_hex
        self.unlocking_hex = unlocking_hex
        self.final_stack = list(final_stack)

    @property
    def locking_size(self) -> int:
        return len(self.locking_hex) // 2

    @property
    def unlocking_size(self) -> int:
        return len(self.unlocking_hex) // 2

    def __repr__(self):
        return f"ValidationResult(valid={self.valid}, error={self.error!r})"


def describe_chunk(chunk: Chunk) -> str:
    if chunk.is_push and chunk.data:
        return "PUSH " + chunk.data.hex()
    name = opcode_name(chunk.op)
    if name is not None:
        return name
    return f"0x{chunk.op:x}"


def snapshot_stack(stack: Sequence[bytes]) -> List[str]:
    return [item.hex() if item else "(empty)" for item in stack]


def is_truthy(item: bytes) -> bool:
    return cast_to_bool(item)


def acceptance_error(stack: Sequence[bytes]) -> Optional[str]:
    """Reason the final stack is rejected, or None if it is accepted"""
    if not stack:
        return EMPTY_STACK_MESSAGE
    if not is_truthy(stack[-1]):
        return FALSY_TOP_MESSAGE
    if len(stack) != 1:
        return CLEAN_STACK_MESSAGE.format(len(stack))
    return None


def trace_stepper(stepper, max_steps: int = config.MAX_TRACE_STEPS) -> TraceResult:
    """
    Drive a stepper to completion, recording one step per executed chunk

    The stepper needs `context`, `program_counter`, `stack`, `alt_stack`,
    `unlocking_script`, `locking_script` and `step()`. The switch from the
    unlocking to the locking script executes nothing and is not recorded.
    """
    steps: List[ExecutionStep] = []
    step_number = 0

    while True:
        context = stepper.context
        pc = stepper.program_counter
        script = stepper.unlocking_script if context == UNLOCKING_SCRIPT else stepper.locking_script
        chunks = script.chunks

        if pc >= len(chunks):
            if context != UNLOCKING_SCRIPT:
                break
            try:
                if not stepper.step():
                    break
            except ExecutionError as e:
                return TraceResult(steps, False, str(e), snapshot_stack(stepper.stack))
            continue

        opcode = describe_chunk(chunks[pc])
        step_number += 1
        error = None
        more = True
        try:
            more = stepper.step()
        except ExecutionError as e:
            error = str(e)

        steps.append(
            ExecutionStep(
                step_number,
                context,
                opcode,
                snapshot_stack(stepper.stack),
                snapshot_stack(stepper.alt_stack),
                error,
            )
        )

        if error is not None:
            return TraceResult(steps, False, error, snapshot_stack(stepper.stack))
        if not more:
            break
        if step_number >= max_steps:
            return TraceResult(
                steps,
                False,
                SAFETY_LIMIT_MESSAGE.format(max_steps),
                snapshot_stack(stepper.stack),
            )

    final_stack = snapshot_stack(stepper.stack)
    reason = acceptance_error(stepper.stack)
    return TraceResult(steps, reason is None, reason, final_stack)


def run_trace(
    locking: Union[str, Script],
    unlocking: Union[str, Script],
    context: Optional[SpendContext] = None,
) -> TraceResult:
    """Trace unlocking then locking script. Malformed scripts raise ParseError."""
    spend = Spend(as_script(locking), as_script(unlocking), context)
    return trace_stepper(spend)


def _load_spend(
    source_tx_hex: str,
    spending_tx_hex: str,
    source_output_index: int,
    spending_input_index: int,
) -> Spend:
    source_tx = Transaction.from_hex(source_tx_hex)
    spending_tx = Transaction.from_hex(spending_tx_hex)
    context = SpendContext.from_transactions(
        source_tx, spending_tx, source_output_index, spending_input_index
    )

    prevout = spending_tx.vin[spending_input_index].prevout
    if prevout.txid != source_tx.txid or prevout.n != source_output_index:
        logger.warning(
            "Input %d spends %s:%d, not %s:%d; tracing anyway",
            spending_input_index,
            prevout.txid,
            prevout.n,
            source_tx.txid,
            source_output_index,
        )

    return Spend(
        source_tx.vout[source_output_index].script_pubkey,
        spending_tx.vin[spending_input_index].script_sig,
        context,
    )


def run_trace_with_real_context(
    source_tx_hex: str,
    spending_tx_hex: str,
    source_output_index: int = 0,
    spending_input_index: int = 0,
) -> TraceResult:
    """Trace a real input against the output it spends, signatures included"""
    spend = _load_spend(source_tx_hex, spending_tx_hex, source_output_index, spending_input_index)
    return trace_stepper(spend)


def validate(
    locking: Union[str, Script],
    unlocking: Union[str, Script],
    context: Optional[SpendContext] = None,
) -> ValidationResult:
    """
    Validate a script pair without keeping the steps

    Unlike run_trace, a conditional still open when the locking script ends
    fails the spend, as it would on chain.
    """
    locking_script = as_script(locking)
    unlocking_script = as_script(unlocking)
    spend = Spend(locking_script, unlocking_script, context)
    result = trace_stepper(spend)
    valid, error = result.valid, result.error
    if valid and spend.conditions:
        valid, error = False, "Unterminated conditional at end of locking script"
    return ValidationResult(
        valid,
        error,
        locking_script.to_hex(),
        unlocking_script.to_hex(),
        result.final_stack,
    )


def validate_transaction_spend(
    source_tx_hex: str,
    spending_tx_hex: str,
    source_output_index: int = 0,
    spending_input_index: int = 0,
) -> ValidationResult:
    """
    Full consensus check of one input, reported rather than raised

    Adds the push-only, balanced conditional and clean stack rules through
    Spend.validate(). Malformed input comes back as an invalid result.
    """
    try:
        spend = _load_spend(
            source_tx_hex, spending_tx_hex, source_output_index, spending_input_index
        )
    except ParseError as e:
        return ValidationResult(False, f"Failed to parse transactions: {e}")
    except OutOfRangeError as e:
        return ValidationResult(False, f"Invalid index: {e}")

    locking_hex = spend.locking_script.to_hex()
    unlocking_hex = spend.unlocking_script.to_hex()
    try:
        spend.validate()
    except ExecutionError as e:
        return ValidationResult(
            False,
            f"Script validation failed: {e}",
            locking_hex,
            unlocking_hex,
            snapshot_stack(spend.stack),
        )
    return ValidationResult(True, None, locking_hex, unlocking_hex, snapshot_stack(spend.stack))


def extract_locking_script(tx_hex: str, output_index: int) -> Tuple[str, str]:
    """(asm, hex) of an output's locking script"""
    script = Transaction.from_hex(tx_hex).output(output_index).script_pubkey
    return script.to_asm(), script.to_hex()


def extract_unlocking_script(tx_hex: str, input_index: int) -> Tuple[str, str]:
    """(asm, hex) of an input's unlocking script"""
    script = Transaction.from_hex(tx_hex).input(input_index).script_sig
    return script.to_asm(), script.to_hex()


def parse_txid(tx_hex: str) -> str:
    return Transaction.from_hex(tx_hex).txid
