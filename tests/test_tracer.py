"""
Tests for the execution tracer and spend validation
"""

import pytest

from .context import scriptlab
from .vectors import HELLO_SHA256, RPUZZLE_SOURCE_TX, RPUZZLE_SPENDING_TX, funding_transaction
from scriptlab import tracer
from scriptlab.interpreter import LOCKING_SCRIPT, UNLOCKING_SCRIPT


class EndlessStepper:
    """Never finishes the single chunk of its locking script"""

    def __init__(self):
        self.context = LOCKING_SCRIPT
        self.program_counter = 0
        self.stack = [b"\x01"]
        self.alt_stack = []
        self.unlocking_script = scriptlab.Script()
        self.locking_script = scriptlab.parse_asm("OP_NOP")

    def step(self):
        return True


def test_simple_trace():
    """Test a passing trace records one step per chunk"""
    result = scriptlab.run_trace("OP_ADD OP_5 OP_EQUAL", "OP_2 OP_3")
    assert result.valid
    assert result.error is None
    assert result.final_stack == ["01"]

    assert [step.step_number for step in result.steps] == [1, 2, 3, 4, 5]
    assert [step.context for step in result.steps] == [UNLOCKING_SCRIPT] * 2 + [LOCKING_SCRIPT] * 3
    assert [step.opcode for step in result.steps] == ["OP_2", "OP_3", "OP_ADD", "OP_5", "OP_EQUAL"]
    assert result.steps[1].stack == ("02", "03")
    assert result.steps[2].stack == ("05",)


def test_step_descriptions():
    """Test pushes are described by payload and empties by name"""
    result = scriptlab.run_trace(f"OP_SHA256 {HELLO_SHA256} OP_EQUAL", "68656c6c6f")
    assert result.valid
    assert result.steps[0].opcode == "PUSH 68656c6c6f"
    assert result.steps[2].opcode == "PUSH " + HELLO_SHA256

    result = scriptlab.run_trace("OP_NOT", "OP_0")
    assert result.steps[0].opcode == "OP_0"
    assert result.steps[0].stack == ("(empty)",)


def test_steps_are_immutable():
    """Test recorded steps cannot be changed"""
    step = scriptlab.run_trace("OP_TRUE", "").steps[0]
    with pytest.raises(AttributeError):
        step.error = "changed"


def test_alt_stack_snapshots():
    """Test the alt stack is captured after each step"""
    result = scriptlab.run_trace("OP_TOALTSTACK OP_2 OP_MUL OP_FROMALTSTACK OP_ADD", "OP_3 OP_4")
    assert result.valid
    assert result.final_stack == ["0a"]
    by_opcode = {step.opcode: step for step in result.steps}
    assert by_opcode["OP_TOALTSTACK"].alt_stack == ("04",)
    assert by_opcode["OP_MUL"].stack == ("06",)
    assert by_opcode["OP_FROMALTSTACK"].alt_stack == ()


def test_acceptance_messages():
    """Test the final stack rule and its messages"""
    empty = scriptlab.run_trace("", "")
    assert not empty.valid
    assert empty.steps == []
    assert empty.error == "Stack empty after execution."

    falsy = scriptlab.run_trace("OP_FALSE", "")
    assert falsy.error == "Top of stack is not truthy."

    negative_zero = scriptlab.run_trace("80", "")
    assert negative_zero.error == "Top of stack is not truthy."

    unclean = scriptlab.run_trace("OP_TRUE", "OP_1 OP_1")
    assert not unclean.valid
    assert unclean.error == "Clean stack rule: expected 1 item, found 3."
    assert unclean.steps[-1].error is None


def test_error_stops_trace():
    """Test the failing step carries the error and nothing runs after it"""
    result = scriptlab.run_trace("OP_EQUALVERIFY OP_1", "OP_1 OP_2")
    assert not result.valid
    assert len(result.steps) == 3
    assert result.steps[-1].opcode == "OP_EQUALVERIFY"
    assert result.steps[-1].error == result.error
    assert "OP_EQUALVERIFY failed" in result.error

    with pytest.raises(scriptlab.ExecutionError):
        result.raise_for_error()


def test_oversized_num2bin_fails_step():
    """Test a huge OP_NUM2BIN size is an execution error, not an allocation"""
    result = scriptlab.run_trace("OP_NUM2BIN", "OP_1 ffffff7f")
    assert not result.valid
    assert len(result.steps) == 3
    assert result.steps[-1].opcode == "OP_NUM2BIN"
    assert "element limit" in result.steps[-1].error
    assert result.final_stack == ["01", "ffffff7f"]


def test_push_only_reported_on_step():
    """Test a non-push unlocking opcode fails on its own step"""
    result = scriptlab.run_trace("OP_TRUE", "OP_1 OP_DUP")
    assert not result.valid
    assert len(result.steps) == 2
    assert result.steps[-1].context == UNLOCKING_SCRIPT
    assert result.steps[-1].opcode == "OP_DUP"
    assert result.steps[-1].error is not None


def test_raise_for_error():
    """Test raise_for_error picks the error category"""
    scriptlab.run_trace("OP_TRUE", "").raise_for_error()

    with pytest.raises(scriptlab.AcceptanceError):
        scriptlab.run_trace("OP_FALSE", "").raise_for_error()

    with pytest.raises(scriptlab.ExecutionError):
        scriptlab.run_trace("OP_DIV", "OP_1 OP_0").raise_for_error()


def test_parse_errors_raise():
    """Test malformed scripts raise instead of tracing"""
    with pytest.raises(scriptlab.ParseError):
        scriptlab.run_trace("OP_BOGUS", "")
    with pytest.raises(scriptlab.ParseError):
        scriptlab.validate("OP_TRUE", "abc")


def test_safety_limit():
    """Test a stepper that never finishes is cut off"""
    assert tracer.SAFETY_LIMIT_MESSAGE.format(10000) == "Execution exceeded 10,000 steps (safety limit)."

    result = tracer.trace_stepper(EndlessStepper(), max_steps=50)
    assert not result.valid
    assert len(result.steps) == 50
    assert result.error == "Execution exceeded 50 steps (safety limit)."
    with pytest.raises(scriptlab.ExecutionError):
        result.raise_for_error()


def test_validate():
    """Test the non-tracing validator"""
    result = scriptlab.validate("OP_ADD OP_5 OP_EQUAL", "OP_2 OP_3")
    assert result.valid
    assert result.locking_hex == "935587"
    assert result.unlocking_hex == "5253"
    assert result.locking_size == 3
    assert result.unlocking_size == 2
    assert result.final_stack == ["01"]

    failed = scriptlab.validate("OP_ADD OP_6 OP_EQUAL", "OP_2 OP_3")
    assert not failed.valid
    assert failed.error == "Top of stack is not truthy."


def test_validate_unterminated_conditional():
    """Test an open OP_IF at the end of the locking script fails validation"""
    result = scriptlab.validate("OP_1 OP_IF OP_1", "")
    assert not result.valid
    assert result.error == "Unterminated conditional at end of locking script"
    assert result.locking_hex == "516351"
    assert result.unlocking_hex == ""
    assert result.final_stack == ["01"]

    assert scriptlab.validate("OP_1 OP_IF OP_1 OP_ENDIF", "").valid


def test_is_truthy():
    """Test the sign-bit aware truthiness helper"""
    assert tracer.is_truthy(b"\x01")
    assert not tracer.is_truthy(b"\x80")
    assert not tracer.is_truthy(b"")


def test_trace_with_real_context():
    """Test tracing a real R-puzzle spend whose r does not match"""
    result = scriptlab.run_trace_with_real_context(RPUZZLE_SOURCE_TX, RPUZZLE_SPENDING_TX, 0, 0)
    assert not result.valid
    assert len(result.steps) == 13
    assert result.steps[-1].opcode == "OP_EQUALVERIFY"
    assert result.steps[-1].error is not None
    assert result.steps[-1].context == LOCKING_SCRIPT


def test_trace_with_real_context_errors():
    """Test bad transactions and indices raise"""
    with pytest.raises(scriptlab.ParseError):
        scriptlab.run_trace_with_real_context("00", RPUZZLE_SPENDING_TX)
    with pytest.raises(scriptlab.OutOfRangeError):
        scriptlab.run_trace_with_real_context(RPUZZLE_SOURCE_TX, RPUZZLE_SPENDING_TX, 1, 0)
    with pytest.raises(scriptlab.OutOfRangeError):
        scriptlab.run_trace_with_real_context(RPUZZLE_SOURCE_TX, RPUZZLE_SPENDING_TX, 0, 1)


def test_validate_transaction_spend_reports():
    """Test failures come back as prefixed results"""
    result = scriptlab.validate_transaction_spend(RPUZZLE_SOURCE_TX, RPUZZLE_SPENDING_TX)
    assert not result.valid
    assert result.error.startswith("Script validation failed: ")
    assert result.locking_hex.startswith("78537f77517f7c7f75")

    parse = scriptlab.validate_transaction_spend("zz", RPUZZLE_SPENDING_TX)
    assert parse.error.startswith("Failed to parse transactions: ")

    index = scriptlab.validate_transaction_spend(RPUZZLE_SOURCE_TX, RPUZZLE_SPENDING_TX, 3, 0)
    assert index.error.startswith("Invalid index: ")


def test_extract_scripts():
    """Test locking and unlocking script extraction"""
    asm, hex_str = scriptlab.extract_locking_script(RPUZZLE_SOURCE_TX, 0)
    assert asm.startswith("OP_OVER OP_3 OP_SPLIT OP_NIP OP_1 OP_SPLIT OP_SWAP OP_SPLIT OP_DROP ")
    assert asm.endswith(" OP_EQUALVERIFY OP_CHECKSIG")
    assert hex_str.endswith("88ac")

    asm, hex_str = scriptlab.extract_unlocking_script(RPUZZLE_SPENDING_TX, 0)
    assert asm.split()[0].startswith("30450221008da0c203")
    assert asm.split()[1] == "02ae912ff4cf65d91f8174fc8620ea4c627fb9ae282a915ff2fa3dd31044971177"

    with pytest.raises(scriptlab.OutOfRangeError):
        scriptlab.extract_locking_script(RPUZZLE_SOURCE_TX, 1)


def test_extract_op_return_output():
    """Test a data output with a truncated payload still extracts"""
    source = funding_transaction(scriptlab.Script(bytes.fromhex("006a4c"))).to_hex()
    assert scriptlab.extract_locking_script(source, 0) == ("OP_0 OP_RETURN 4c", "006a4c")

    result = scriptlab.run_trace("OP_RETURN", "OP_1")
    assert result.valid
    assert [step.opcode for step in result.steps] == ["OP_1", "OP_RETURN"]


def test_parse_txid():
    """Test txid parsing"""
    txid = scriptlab.parse_txid(RPUZZLE_SOURCE_TX)
    assert len(txid) == 64
    assert txid == scriptlab.Transaction.from_hex(RPUZZLE_SOURCE_TX).txid


def test_templates_trace():
    """Test every self-contained template passes and the rest fail as documented"""
    expected_failures = {"always-fail", "op-return", "op-return-multi", "custom"}
    for template in scriptlab.TEMPLATES:
        if template.requires_tx_context:
            continue
        result = scriptlab.run_trace(template.locking_asm, template.unlocking_asm)
        if template.id in expected_failures:
            assert not result.valid, template.id
        else:
            assert result.valid, (template.id, result.error)
