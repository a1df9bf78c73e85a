"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Example scripts and the opcode reference
"""

from collections import OrderedDict
from typing import Dict, List, NamedTuple, Optional, Tuple

HELLO_SHA256 = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
HELLO_HASH160 = "b6a9c8c230722b7c748331a8b450f05566dc7d0f"
SECRET_SHA256 = "2bb80d537b1da3e38bd30361aa855686bde0eacd7162fef6a25fe97bf527a25b"
PLACEHOLDER_PUBKEY_A = "00" * 32 + "aa"
PLACEHOLDER_PUBKEY_B = "00" * 32 + "bb"
PLACEHOLDER_HASH = "00" * 20


class Template(NamedTuple):
    """A ready-made locking/unlocking script pair"""

    id: str
    name: str
    category: str
    description: str
    locking_asm: str
    unlocking_asm: str
    note: Optional[str] = None
    # Related templates share a group (htlc-redeem and htlc-refund)
    group: Optional[str] = None
    # Uses OP_CHECKSIG, so only a real spend context can validate it
    requires_tx_context: bool = False
    # Demonstrates a transaction-level feature; not meant to validate
    educational: bool = False
    # "hash-puzzle", "r-puzzle" or "alt-stack"
    interactive_config: Optional[str] = None


class OpcodeEntry(NamedTuple):
    name: str
    desc: str


class OpcodeCategory(NamedTuple):
    category: str
    opcodes: Tuple[OpcodeEntry, ...]


TEMPLATES: Tuple[Template, ...] = (
    # Basic
    Template(
        id="anyone-can-spend",
        name="Anyone Can Spend",
        category="Basic",
        description=(
            "The simplest possible script. The locking script always pushes TRUE, "
            "so any unlocking script (even empty) will satisfy it."
        ),
        locking_asm="OP_TRUE",
        unlocking_asm="",
    ),
    Template(
        id="always-fail",
        name="Always Fail",
        category="Basic",
        description=(
            "A script that always fails validation. Useful for provably unspendable "
            "outputs (burn addresses)."
        ),
        locking_asm="OP_FALSE",
        unlocking_asm="",
        note="This will always fail validation. That's the point!",
    ),
    # Puzzles
    Template(
        id="math-add",
        name="Addition Puzzle",
        category="Lock Funds",
        description="The two values pushed by the unlocking script must add up to 5.",
        locking_asm="OP_ADD OP_5 OP_EQUAL",
        unlocking_asm="OP_2 OP_3",
    ),
    Template(
        id="math-multiply",
        name="Multiplication Puzzle",
        category="Lock Funds",
        description=(
            "The two values must multiply to 12. OP_MUL is enabled in BSV "
            "(disabled in BTC since 2010)."
        ),
        locking_asm="OP_MUL OP_12 OP_EQUAL",
        unlocking_asm="OP_3 OP_4",
        note="Try other factor pairs: OP_2 OP_6, OP_1 OP_12.",
    ),
    Template(
        id="hash-sha256",
        name="Hash Puzzle (SHA256)",
        category="Lock Funds",
        description=(
            'Provide the SHA256 preimage of the hash. Preimage here is "hello" '
            "(hex 68656c6c6f)."
        ),
        locking_asm=f"OP_SHA256 {HELLO_SHA256} OP_EQUAL",
        unlocking_asm="68656c6c6f",
        note='Preimage: "hello" -> SHA256 = 2cf24d...9824',
        interactive_config="hash-puzzle",
    ),
    Template(
        id="hash-hash160",
        name="Hash Puzzle (HASH160)",
        category="Lock Funds",
        description=(
            "HASH160 = RIPEMD160(SHA256(x)), the same hash used in P2PKH addresses. "
            'Preimage is "hello".'
        ),
        locking_asm=f"OP_HASH160 {HELLO_HASH160} OP_EQUAL",
        unlocking_asm="68656c6c6f",
        note='Preimage: "hello" -> HASH160 = b6a9c8...7d0f',
        interactive_config="hash-puzzle",
    ),
    Template(
        id="hash-ripemd160",
        name="Hash Puzzle (RIPEMD160)",
        category="Lock Funds",
        description='Direct RIPEMD160 puzzle. Produces a 20-byte hash. Preimage is "hello".',
        locking_asm="OP_RIPEMD160 108f07b8382412612c048d07d13f814118445acd OP_EQUAL",
        unlocking_asm="68656c6c6f",
        note=(
            'Preimage: "hello" -> RIPEMD160 = 108f07...5acd. Rarely used alone but a '
            "building block of HASH160."
        ),
    ),
    Template(
        id="hash-dual-secret",
        name="Dual Secret (AND)",
        category="Lock Funds",
        description=(
            "Requires TWO preimages to unlock. Both SHA256 hashes must match. Useful "
            "for dual-party escrow where both must reveal their secrets."
        ),
        locking_asm=(
            "OP_SHA256 2bd806c97f0e00af1a1fc3328fa763a9269723c8db8fac4f93af71db186d6e90 "
            "OP_EQUALVERIFY "
            "OP_SHA256 81b637d8fcd2c6da6359e6963113a1170de795e4b725b84d1e0b4cfd9ec58ce9 "
            "OP_EQUAL"
        ),
        unlocking_asm="626f62 616c696365",
        note=(
            'Unlock pushes "bob" then "alice". Lock checks "alice" first (top of '
            'stack) via EQUALVERIFY, then "bob".'
        ),
    ),
    # Arithmetic
    Template(
        id="range-check",
        name="Range Check",
        category="Lock Funds",
        description=(
            "Value must be between 3 (inclusive) and 10 (exclusive). Demonstrates "
            "OP_WITHIN for numeric range validation."
        ),
        locking_asm="OP_DUP OP_3 OP_10 OP_WITHIN OP_VERIFY",
        unlocking_asm="OP_5",
        note=(
            "OP_WITHIN checks if x is in [min, max). Try values outside 3-9 to see it "
            "fail. OP_VERIFY consumes TRUE; the DUP-ed value (5) remains as the "
            "truthy result."
        ),
    ),
    Template(
        id="abs-value",
        name="Absolute Value",
        category="Lock Funds",
        description="The absolute value of the input must equal 7. Works with both 7 and -7.",
        locking_asm="OP_ABS OP_7 OP_EQUAL",
        unlocking_asm="OP_7",
        note="Try pushing 87 (-7 as a script number); OP_ABS converts it to 7 and it still passes.",
    ),
    # R-puzzle
    Template(
        id="rpuzzle-raw",
        name="R-Puzzle (Raw)",
        category="Lock Funds",
        description=(
            "R-Puzzle locked to a raw R value. Anyone with the K value can sign and "
            "spend. Generate a new one for actual use."
        ),
        locking_asm=(
            "OP_OVER OP_3 OP_SPLIT OP_NIP OP_TRUE OP_SPLIT OP_SWAP OP_SPLIT OP_DROP "
            "f01d6b9018ab421dd410404cb869072065522bf85734008f105cf385a023a80f "
            "OP_EQUALVERIFY OP_CHECKSIG"
        ),
        unlocking_asm="<signature> <public key>",
        note=(
            "R-Puzzles require OP_CHECKSIG. Use the transaction builder to create real "
            "R-Puzzle transactions. K value for this example: 3039 (hex)."
        ),
        requires_tx_context=True,
        interactive_config="r-puzzle",
    ),
    # Control flow
    Template(
        id="if-else",
        name="If / Else Branch",
        category="Control Flow",
        description=(
            "Conditional execution. Push OP_TRUE to take the IF branch (result 2), or "
            "OP_FALSE for ELSE (result 3)."
        ),
        locking_asm="OP_IF OP_2 OP_ELSE OP_3 OP_ENDIF",
        unlocking_asm="OP_TRUE",
        note="Try changing the unlock to OP_FALSE to take the ELSE branch.",
    ),
    Template(
        id="nested-if",
        name="Nested If/Else",
        category="Control Flow",
        description=(
            "Two-level conditional with four possible outcomes depending on two "
            "boolean inputs."
        ),
        locking_asm=(
            "OP_IF OP_IF OP_2 OP_ELSE OP_3 OP_ENDIF "
            "OP_ELSE OP_IF OP_4 OP_ELSE OP_5 OP_ENDIF OP_ENDIF"
        ),
        unlocking_asm="OP_TRUE OP_TRUE",
        note=(
            "TRUE TRUE -> 2. FALSE TRUE -> 3. TRUE FALSE -> 4. FALSE FALSE -> 5. "
            "First push controls inner IF; second controls outer (stack is LIFO)."
        ),
    ),
    Template(
        id="notif-pattern",
        name="OP_NOTIF Pattern",
        category="Control Flow",
        description=(
            "OP_NOTIF executes its block when the top value is falsy, the inverse of OP_IF."
        ),
        locking_asm="OP_NOTIF OP_7 OP_ELSE OP_8 OP_ENDIF",
        unlocking_asm="OP_FALSE",
        note="Push FALSE -> result 7. Push TRUE -> result 8.",
    ),
    # Stack
    Template(
        id="alt-stack",
        name="Alt Stack Arithmetic",
        category="Stack",
        description=(
            "Uses the alt stack as scratch space. Moves a value aside, does math on the "
            "main stack, retrieves it. Result: val1 x 2 + val2."
        ),
        locking_asm="OP_TOALTSTACK OP_2 OP_MUL OP_FROMALTSTACK OP_ADD",
        unlocking_asm="OP_3 OP_4",
        note=(
            "Pushes 3, 4 -> moves 4 to alt stack -> 3x2=6 -> retrieves 4 -> 6+4=10. "
            "Watch the alt stack column in the trace."
        ),
        interactive_config="alt-stack",
    ),
    Template(
        id="alt-accumulator",
        name="Alt Stack Accumulator",
        category="Stack",
        description=(
            "Sums three numbers using the alt stack as a running total. Demonstrates "
            'the "unrolled loop" pattern common in BSV scripts.'
        ),
        locking_asm="OP_ADD OP_TOALTSTACK OP_FROMALTSTACK OP_ADD",
        unlocking_asm="OP_2 OP_3 OP_4",
        note=(
            "Pushes 2, 3, 4 -> adds 3+4=7 -> stash 7 on alt -> retrieve -> 7+2=9. "
            "The alt stack acts as temporary storage between loop iterations."
        ),
    ),
    Template(
        id="stack-depth-check",
        name="Stack Depth Check",
        category="Stack",
        description=(
            "Requires exactly 3 items on the stack, then sums them. OP_DEPTH pushes the "
            "current stack depth."
        ),
        locking_asm="OP_DEPTH OP_3 OP_EQUALVERIFY OP_ADD OP_ADD",
        unlocking_asm="OP_1 OP_2 OP_3",
        note=(
            "Depth must be 3, then sums: 1+2+3=6. Push fewer or more items to see "
            "EQUALVERIFY fail."
        ),
    ),
    # Time locks live in nLockTime/nSequence; CLTV and CSV are OP_NOP2/OP_NOP3 on BSV
    Template(
        id="nlocktime-intro",
        name="nLockTime (Absolute)",
        category="Time Lock",
        description=(
            "On BSV, absolute timelocks use the transaction-level nLockTime field, not a "
            "script opcode. OP_CHECKLOCKTIMEVERIFY (CLTV) is disabled on BSV (it's "
            "OP_NOP2). Miners enforce the lock: a TX with a future nLockTime won't be "
            "included in a block until that time."
        ),
        locking_asm="OP_TRUE",
        unlocking_asm="",
        note=(
            "This script always passes; the timelock is a property of the TRANSACTION, "
            "not the script. To use nLockTime: (1) set nLockTime to a block height "
            "(<500M) or Unix timestamp (>=500M), (2) set at least one input's "
            "nSequence < 0xFFFFFFFF. Miners reject the TX until the locktime is reached."
        ),
        educational=True,
    ),
    Template(
        id="nlocktime-sequence",
        name="nLockTime + nSequence",
        category="Time Lock",
        description=(
            "nSequence on BSV retains its original meaning: transaction finality. If ALL "
            "inputs have nSequence = 0xFFFFFFFF (max), the TX is 'final' and nLockTime "
            "is IGNORED. To activate nLockTime, at least one input must have "
            "nSequence < max."
        ),
        locking_asm="OP_TRUE",
        unlocking_asm="",
        note=(
            "BSV does NOT use BIP-68 relative timelocks (that's BTC/BCH only). On BSV, "
            "nSequence controls finality: non-max means the TX is replaceable and "
            "nLockTime is enforced. Update a TX by incrementing nSequence, and only the "
            "highest-sequence version gets mined."
        ),
        educational=True,
    ),
    # Escrow
    Template(
        id="htlc-redeem",
        name="HTLC (Claim Path)",
        category="Escrow & Swaps",
        description=(
            "Hash Time-Locked Contract, the atomic swap primitive. Two paths: claim with "
            "secret preimage (IF), or refund with a different secret (ELSE). On BSV, "
            "refund timing is enforced via nLockTime at the TX level."
        ),
        locking_asm=(
            f"OP_IF OP_SHA256 {SECRET_SHA256} OP_EQUAL "
            f"OP_ELSE OP_SHA256 {HELLO_SHA256} OP_EQUAL OP_ENDIF"
        ),
        unlocking_asm="736563726574 OP_TRUE",
        note=(
            'Claim: push "secret" + TRUE. Refund: push "hello" + FALSE. In production, '
            "add OP_CHECKSIG to each path and enforce the refund timeout via the "
            "spending TX's nLockTime field (BSV does not use CLTV in script)."
        ),
        group="htlc",
    ),
    Template(
        id="htlc-refund",
        name="HTLC (Refund Path)",
        category="Escrow & Swaps",
        description=(
            "Same HTLC lock script, taking the ELSE (refund) branch. On-chain, the "
            "refund TX would set nLockTime to enforce a waiting period before miners "
            "accept it."
        ),
        locking_asm=(
            f"OP_IF OP_SHA256 {SECRET_SHA256} OP_EQUAL "
            f"OP_ELSE OP_SHA256 {HELLO_SHA256} OP_EQUAL OP_ENDIF"
        ),
        unlocking_asm="68656c6c6f OP_FALSE",
        note=(
            'Takes the ELSE branch with preimage "hello". In production, the refund TX '
            "sets nLockTime >= a future block height. Miners won't include it until the "
            "timeout, giving the counterparty time to claim first."
        ),
        group="htlc",
    ),
    Template(
        id="escrow-2of2",
        name="2-of-2 Escrow (Reference)",
        category="Escrow & Swaps",
        description=(
            "Bare 2-of-2 multisig: both parties must sign to release funds. The simplest "
            "escrow pattern."
        ),
        locking_asm=f"OP_2 {PLACEHOLDER_PUBKEY_A} {PLACEHOLDER_PUBKEY_B} OP_2 OP_CHECKMULTISIG",
        unlocking_asm="OP_0 00 00",
        note=(
            "Reference; needs real signatures, keys, and TX context. Leading OP_0 is "
            "the CHECKMULTISIG off-by-one workaround."
        ),
        requires_tx_context=True,
    ),
    # Standard payments
    Template(
        id="p2pkh-ref",
        name="P2PKH (Reference)",
        category="Standard Payments",
        description=(
            "Pay-to-Public-Key-Hash, the standard BSV payment pattern. Requires a valid "
            "signature + matching public key."
        ),
        locking_asm=f"OP_DUP OP_HASH160 {PLACEHOLDER_HASH} OP_EQUALVERIFY OP_CHECKSIG",
        unlocking_asm="00 00",
        note=(
            "Will NOT validate without a real spend; OP_CHECKSIG needs real TX context. "
            "Shown for reference."
        ),
        requires_tx_context=True,
    ),
    Template(
        id="p2pk-ref",
        name="P2PK (Reference)",
        category="Standard Payments",
        description=(
            "Pay-to-Public-Key, the original Bitcoin payment script. The public key is "
            "embedded directly in the lock."
        ),
        locking_asm=f"{PLACEHOLDER_PUBKEY_A} OP_CHECKSIG",
        unlocking_asm="00",
        note=(
            "The first Bitcoin transactions used P2PK. Cannot validate without real TX "
            "context + valid signature."
        ),
        requires_tx_context=True,
    ),
    Template(
        id="bare-multisig-ref",
        name="1-of-2 Multisig (Reference)",
        category="Standard Payments",
        description=(
            "Bare 1-of-2 multisig: either party can sign alone. Demonstrates "
            "OP_CHECKMULTISIG with threshold M < N."
        ),
        locking_asm=f"OP_1 {PLACEHOLDER_PUBKEY_A} {PLACEHOLDER_PUBKEY_B} OP_2 OP_CHECKMULTISIG",
        unlocking_asm="OP_0 00",
        note=(
            "1-of-2 multisig: only one valid signature needed. OP_0 is the "
            "CHECKMULTISIG dummy element. Cannot validate without real TX context."
        ),
        requires_tx_context=True,
    ),
    # Data manipulation
    Template(
        id="string-concat",
        name="String Concatenation (OP_CAT)",
        category="Data Manipulation",
        description=(
            "Concatenate two byte strings and verify the result. OP_CAT is enabled in "
            'BSV (disabled in BTC since 2010). Push "hello" and "world"; they must '
            'combine to "helloworld".'
        ),
        locking_asm="OP_CAT 68656c6c6f776f726c64 OP_EQUAL",
        unlocking_asm="68656c6c6f 776f726c64",
        note=(
            "OP_CAT concatenates the second-to-top with the top: [hello, world] -> "
            "[helloworld]. One of BSV's restored opcodes, essential for advanced "
            "script patterns like OP_PUSH_TX."
        ),
    ),
    Template(
        id="byte-split",
        name="Byte Extraction (OP_SPLIT)",
        category="Data Manipulation",
        description=(
            "Split a byte string at a given position and verify both halves. OP_SPLIT "
            "is enabled in BSV, the inverse of OP_CAT."
        ),
        locking_asm="OP_5 OP_SPLIT 776f726c64 OP_EQUALVERIFY 68656c6c6f OP_EQUAL",
        unlocking_asm="68656c6c6f776f726c64",
        note=(
            'Splits "helloworld" at byte 5: [hello, world]. Verifies both halves. '
            "OP_SPLIT + OP_CAT enable arbitrary byte-level data manipulation in BSV "
            "scripts."
        ),
    ),
    # Data embedding
    Template(
        id="op-return",
        name="OP_RETURN Data",
        category="Data Embedding",
        description=(
            "Embed arbitrary data on-chain. OP_RETURN marks the output as provably "
            "unspendable."
        ),
        locking_asm="OP_FALSE OP_RETURN 48656c6c6f20576f726c64",
        unlocking_asm="",
        note=(
            'Data: "Hello World". OP_RETURN outputs can never be spent; validation '
            "will fail by design."
        ),
    ),
    Template(
        id="op-return-multi",
        name="OP_RETURN Multi-Push",
        category="Data Embedding",
        description=(
            "Multiple data fields in a single OP_RETURN, the pattern used by on-chain "
            "protocols (B://, MAP, etc.)."
        ),
        locking_asm="OP_FALSE OP_RETURN 48656c6c6f 576f726c64 313233",
        unlocking_asm="",
        note=(
            'Three pushes: "Hello", "World", "123". Protocols use multiple pushes to '
            "structure data (prefix, fields, etc.)."
        ),
    ),
    Template(
        id="data-integrity",
        name="Data Integrity Proof",
        category="Data Embedding",
        description=(
            "Verify document integrity on-chain. The lock commits to a SHA256 hash; the "
            "unlock provides the original data. The script verifies the data matches, "
            "proving the document existed when the output was created. The output "
            "remains spendable."
        ),
        locking_asm=(
            "OP_DUP OP_SHA256 d0276bec6bc9b96f1893cd8f8b479dd6617d79a8f0a26593c9f12bdc45e3eea5 "
            "OP_EQUALVERIFY OP_SIZE OP_NIP OP_0 OP_GREATERTHAN"
        ),
        unlocking_asm="504f2d323032342d303031",
        note=(
            'Data: "PO-2024-001" (a purchase order ID). DUP keeps the data for SIZE '
            "check after hash verification. SIZE + NIP + GREATERTHAN ensures non-empty "
            "data remains as the truthy result. Unlike OP_RETURN, this output is "
            "spendable; the data lives in the spending TX's input script."
        ),
    ),
    Template(
        id="message-auth",
        name="Message Authentication (OP_CAT)",
        category="Data Embedding",
        description=(
            "Verify a structured message by concatenating sender + payload and checking "
            "the combined hash. Demonstrates OP_CAT for composing data before "
            "verification, a pattern used in on-chain messaging and EDI."
        ),
        locking_asm=(
            "OP_CAT OP_SHA256 b5f2cf84fd46833a53045e8952af76ec501feb9254ab4fa0a000126a424bac6b "
            "OP_EQUAL"
        ),
        unlocking_asm="616c696365 696e766f696365",
        note=(
            'Push sender "alice" + payload "invoice". OP_CAT joins them, SHA256 hashes '
            "the result, and the lock verifies against the committed hash. Structured "
            "B2B data is verified and timestamped without OP_RETURN; the output stays "
            "spendable."
        ),
    ),
    Template(
        id="brc48-push-drop",
        name="BRC-48: Pay to Push Drop",
        category="Data Embedding",
        description=(
            "BRC-48: data-rich tokens with ownership. Push arbitrary data onto the stack, "
            "drop it with OP_DROP/OP_2DROP, then lock to a public key. The output stays "
            "in the UTXO set and can be transferred by the owner."
        ),
        locking_asm=(
            f"48656c6c6f 576f726c64 OP_DROP OP_2DROP {PLACEHOLDER_PUBKEY_A} OP_CHECKSIG"
        ),
        unlocking_asm="<signature>",
        note=(
            'BRC-48 pattern. Data: "Hello" "World". Push data, drop it, then lock to '
            "the owner's public key. The owner transfers the token by spending with a "
            "signature. Stays in the UTXO set, not prunable like OP_RETURN."
        ),
        requires_tx_context=True,
    ),
    # Covenants
    Template(
        id="rabin-sig",
        name="Rabin Signature Verification",
        category="Covenants",
        description=(
            "Verify a simplified Rabin signature on-chain. The verifier computes "
            "s^2 mod n and checks it equals the message digest m. Uses OP_MUL and "
            "OP_MOD, opcodes restored in BSV."
        ),
        locking_asm="OP_DUP OP_MUL 4d OP_MOD OP_4 OP_EQUAL",
        unlocking_asm="OP_9",
        note=(
            "Rabin signatures: public key n=77 (p=7 x q=11), signature s=9, message "
            "m=4. Verification: 9^2 = 81, 81 mod 77 = 4 = m. Rabin signatures enable "
            "cheap verification for oracles and external data feeds."
        ),
    ),
    Template(
        id="op-push-tx",
        name="OP_PUSH_TX Covenant",
        category="Covenants",
        description=(
            "Transaction introspection pattern. The spending transaction's sighash "
            "preimage is pushed in the unlock and verified by the lock using "
            "OP_CHECKSIG with a known ephemeral key. Once verified, the preimage bytes "
            "are available on the stack, enabling covenants that constrain how funds "
            "can be spent."
        ),
        locking_asm=f"OP_DUP OP_HASH160 {PLACEHOLDER_HASH} OP_EQUALVERIFY OP_CHECKSIG",
        unlocking_asm="<sighash_preimage> <signature>",
        note=(
            "OP_PUSH_TX is not an opcode but a technique. The script uses a "
            "deterministic key (k=1) so the signature is reconstructable. When "
            "OP_CHECKSIG passes, the pushed preimage is proven to be the real "
            "transaction data."
        ),
        requires_tx_context=True,
        educational=True,
    ),
    # Combinations
    Template(
        id="conditional-hash",
        name="Conditional Hash (SHA256 or HASH160)",
        category="Escrow & Swaps",
        description=(
            "Choose which hash algorithm to prove: push TRUE for SHA256 path, FALSE for "
            'HASH160 path. Both use preimage "hello".'
        ),
        locking_asm=(
            f"OP_IF OP_SHA256 {HELLO_SHA256} OP_EQUAL "
            f"OP_ELSE OP_HASH160 {HELLO_HASH160} OP_EQUAL OP_ENDIF"
        ),
        unlocking_asm="68656c6c6f OP_TRUE",
        note=(
            'Push "hello" + TRUE for SHA256 path. Change to FALSE for HASH160 path; '
            "the same preimage works for both."
        ),
    ),
    Template(
        id="hash-dual-path",
        name="Dual Hash Path",
        category="Escrow & Swaps",
        description=(
            "Two-path contract: claim with one preimage (IF) or refund with a different "
            "preimage (ELSE). The BSV-native HTLC structure; timing is enforced via "
            "nLockTime at the TX level, not script opcodes."
        ),
        locking_asm=(
            f"OP_IF OP_SHA256 {HELLO_SHA256} OP_EQUAL "
            f"OP_ELSE OP_SHA256 {SECRET_SHA256} OP_EQUAL OP_ENDIF"
        ),
        unlocking_asm="68656c6c6f OP_TRUE",
        note=(
            'Claim: push "hello" + TRUE. Refund: push "secret" + FALSE. The refund '
            "timeout is enforced by the spending TX's nLockTime."
        ),
        group="hash-dual-path",
    ),
    # Custom
    Template(
        id="custom",
        name="Custom Script",
        category="Custom",
        description="Write your own locking and unlocking scripts from scratch using opcodes.",
        locking_asm="",
        unlocking_asm="",
    ),
)

_TEMPLATES_BY_ID: Dict[str, Template] = {template.id: template for template in TEMPLATES}


def get_template(template_id: str) -> Template:
    """Look up a template by id; raises KeyError for an unknown id"""
    if template_id not in _TEMPLATES_BY_ID:
        raise KeyError(f"Unknown template: {template_id}")
    return _TEMPLATES_BY_ID[template_id]


def templates_by_category() -> "OrderedDict[str, List[Template]]":
    """Templates grouped by category, in catalog order"""
    grouped: "OrderedDict[str, List[Template]]" = OrderedDict()
    for template in TEMPLATES:
        grouped.setdefault(template.category, []).append(template)
    return grouped


def _entries(*pairs: Tuple[str, str]) -> Tuple[OpcodeEntry, ...]:
    return tuple(OpcodeEntry(name, desc) for name, desc in pairs)


OPCODE_REFERENCE: Tuple[OpcodeCategory, ...] = (
    OpcodeCategory(
        "Constants",
        _entries(
            ("OP_0 / OP_FALSE", "Push empty byte array (falsy)"),
            ("OP_1 - OP_16", "Push number 1 through 16"),
            ("OP_TRUE", "Alias for OP_1 (truthy)"),
            ("OP_1NEGATE", "Push -1"),
        ),
    ),
    OpcodeCategory(
        "Stack",
        _entries(
            ("OP_DUP", "Duplicate top item"),
            ("OP_DROP", "Remove top item"),
            ("OP_SWAP", "Swap top two items"),
            ("OP_OVER", "Copy second item to top"),
            ("OP_ROT", "Rotate top three items"),
            ("OP_PICK", "Copy nth item to top"),
            ("OP_ROLL", "Move nth item to top"),
            ("OP_SIZE", "Push byte-length of top item"),
            ("OP_DEPTH", "Push current stack depth"),
            ("OP_TOALTSTACK", "Move top item to alt stack"),
            ("OP_FROMALTSTACK", "Move top of alt stack to main"),
            ("OP_NIP", "Remove second-to-top item"),
            ("OP_TUCK", "Copy top before second item"),
            ("OP_IFDUP", "Duplicate top if truthy"),
        ),
    ),
    OpcodeCategory(
        "Arithmetic",
        _entries(
            ("OP_ADD", "a + b"),
            ("OP_SUB", "a - b"),
            ("OP_MUL", "a x b"),
            ("OP_DIV", "a / b (integer, rounded toward zero)"),
            ("OP_MOD", "a % b (sign of a)"),
            ("OP_ABS", "Absolute value"),
            ("OP_NEGATE", "Flip sign"),
            ("OP_1ADD", "Add 1"),
            ("OP_1SUB", "Subtract 1"),
            ("OP_MIN", "Smaller of two values"),
            ("OP_MAX", "Larger of two values"),
            ("OP_WITHIN", "True if x in [min, max)"),
        ),
    ),
    OpcodeCategory(
        "Logic & Comparison",
        _entries(
            ("OP_EQUAL", "Push 1 if top two are equal"),
            ("OP_EQUALVERIFY", "OP_EQUAL then OP_VERIFY"),
            ("OP_NOT", "Boolean NOT"),
            ("OP_BOOLAND", "Boolean AND"),
            ("OP_BOOLOR", "Boolean OR"),
            ("OP_NUMEQUAL", "Numeric equality"),
            ("OP_LESSTHAN", "a < b"),
            ("OP_GREATERTHAN", "a > b"),
            ("OP_LESSTHANOREQUAL", "a <= b"),
            ("OP_GREATERTHANOREQUAL", "a >= b"),
        ),
    ),
    OpcodeCategory(
        "Cryptography",
        _entries(
            ("OP_SHA256", "SHA-256 hash of top item"),
            ("OP_HASH160", "RIPEMD160(SHA256(top))"),
            ("OP_HASH256", "SHA256(SHA256(top))"),
            ("OP_RIPEMD160", "RIPEMD160 hash"),
            ("OP_SHA1", "SHA-1 hash (legacy)"),
            ("OP_CHECKSIG", "Verify ECDSA signature"),
            ("OP_CHECKMULTISIG", "Verify M-of-N signatures"),
            ("OP_CODESEPARATOR", "Mark for sig hashing"),
        ),
    ),
    OpcodeCategory(
        "Control Flow",
        _entries(
            ("OP_IF", "Execute block if top is truthy"),
            ("OP_NOTIF", "Execute block if top is falsy"),
            ("OP_ELSE", "Else branch of OP_IF"),
            ("OP_ENDIF", "End conditional block"),
            ("OP_VERIFY", "Fail if top is not truthy"),
            ("OP_RETURN", "End the script; marks an output unspendable"),
        ),
    ),
    OpcodeCategory(
        "Data Manipulation",
        _entries(
            ("OP_CAT", "Concatenate two byte strings"),
            ("OP_SPLIT", "Split bytes at position n"),
            ("OP_NUM2BIN", "Convert number to n-byte binary"),
            ("OP_BIN2NUM", "Convert binary to number"),
            ("OP_LSHIFT", "Left shift"),
            ("OP_RSHIFT", "Right shift"),
            ("OP_AND", "Bitwise AND"),
            ("OP_OR", "Bitwise OR"),
            ("OP_XOR", "Bitwise XOR"),
            ("OP_INVERT", "Bitwise NOT"),
        ),
    ),
)
