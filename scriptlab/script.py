"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Script opcodes, chunks and the ASM/hex codec
"""

import functools
import re
import struct
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from scriptlab.errors import ParseError
from scriptlab.util import is_hex, strip_whitespace

# Script opcodes
OP_0 = 0
OP_FALSE = OP_0
OP_PUSHDATA1 = 76
OP_PUSHDATA2 = 77
OP_PUSHDATA4 = 78
OP_1NEGATE = 79
OP_RESERVED = 80
OP_1 = 81
OP_TRUE = OP_1
OP_2 = 82
OP_3 = 83
OP_4 = 84
OP_5 = 85
OP_6 = 86
OP_7 = 87
OP_8 = 88
OP_9 = 89
OP_10 = 90
OP_11 = 91
OP_12 = 92
OP_13 = 93
OP_14 = 94
OP_15 = 95
OP_16 = 96
OP_NOP = 97
OP_VER = 98
OP_IF = 99
OP_NOTIF = 100
OP_VERIF = 101
OP_VERNOTIF = 102
OP_ELSE = 103
OP_ENDIF = 104
OP_VERIFY = 105
OP_RETURN = 106
OP_TOALTSTACK = 107
OP_FROMALTSTACK = 108
OP_2DROP = 109
OP_2DUP = 110
OP_3DUP = 111
OP_2OVER = 112
OP_2ROT = 113
OP_2SWAP = 114
OP_IFDUP = 115
OP_DEPTH = 116
OP_DROP = 117
OP_DUP = 118
OP_NIP = 119
OP_OVER = 120
OP_PICK = 121
OP_ROLL = 122
OP_ROT = 123
OP_SWAP = 124
OP_TUCK = 125
OP_CAT = 126
OP_SPLIT = 127
OP_NUM2BIN = 128
OP_BIN2NUM = 129
OP_SIZE = 130
OP_INVERT = 131
OP_AND = 132
OP_OR = 133
OP_XOR = 134
OP_EQUAL = 135
OP_EQUALVERIFY = 136
OP_RESERVED1 = 137
OP_RESERVED2 = 138
OP_1ADD = 139
OP_1SUB = 140
OP_2MUL = 141
OP_2DIV = 142
OP_NEGATE = 143
OP_ABS = 144
OP_NOT = 145
OP_0NOTEQUAL = 146
OP_ADD = 147
OP_SUB = 148
OP_MUL = 149
OP_DIV = 150
OP_MOD = 151
OP_LSHIFT = 152
OP_RSHIFT = 153
OP_BOOLAND = 154
OP_BOOLOR = 155
OP_NUMEQUAL = 156
OP_NUMEQUALVERIFY = 157
OP_NUMNOTEQUAL = 158
OP_LESSTHAN = 159
OP_GREATERTHAN = 160
OP_LESSTHANOREQUAL = 161
OP_GREATERTHANOREQUAL = 162
OP_MIN = 163
OP_MAX = 164
OP_WITHIN = 165
OP_RIPEMD160 = 166
OP_SHA1 = 167
OP_SHA256 = 168
OP_HASH160 = 169
OP_HASH256 = 170
OP_CODESEPARATOR = 171
OP_CHECKSIG = 172
OP_CHECKSIGVERIFY = 173
OP_CHECKMULTISIG = 174
OP_CHECKMULTISIGVERIFY = 175
OP_NOP1 = 176
OP_NOP2 = 177
OP_NOP3 = 178
OP_NOP4 = 179
OP_NOP5 = 180
OP_NOP6 = 181
OP_NOP7 = 182
OP_NOP8 = 183
OP_NOP9 = 184
OP_NOP10 = 185
OP_INVALIDOPCODE = 255

# Canonical names come first; later names for the same byte are accepted
# by the parser but never rendered.
OPCODES: Mapping[str, int] = MappingProxyType(
    {
        name: value
        for name, value in sorted(
            ((name, value) for name, value in globals().items() if name.startswith("OP_")),
            key=lambda item: item[0] in ("OP_FALSE", "OP_TRUE"),
        )
    }
)

# Opcodes retired to no-ops by the Genesis upgrade, still accepted by name
OPCODE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "OP_CHECKLOCKTIMEVERIFY": "OP_NOP2",
        "OP_CHECKSEQUENCEVERIFY": "OP_NOP3",
    }
)

_ALIAS_RES = tuple(
    (re.compile(r"\b%s\b" % alias), name) for alias, name in OPCODE_ALIASES.items()
)
_UNKNOWN_RE = re.compile(r"^OP_UNKNOWN(\d+)$")
_HEX_TOKEN_RE = re.compile(r"^[0-9a-fA-F]+$")


@functools.lru_cache(maxsize=None)
def _opcode_names() -> Mapping[int, str]:
    names: Dict[int, str] = {}
    for name, value in OPCODES.items():
        names.setdefault(value, name)
    return MappingProxyType(names)


def opcode_name(opcode: int) -> Optional[str]:
    """Canonical name of an opcode byte, or None if it has none"""
    return _opcode_names().get(opcode)


def normalize_aliases(asm: str) -> str:
    """Rewrite retired opcode names to their no-op equivalents"""
    for pattern, name in _ALIAS_RES:
        asm = pattern.sub(name, asm)
    return asm


class Chunk:
    """A single script element: an opcode, or a push with its payload"""

    __slots__ = ("op", "data")

    def __init__(self, op: int, data: Optional[bytes] = None):
        self.op = op
        self.data = data

    @property
    def is_push(self) -> bool:
        return self.op <= OP_PUSHDATA4

    def __eq__(self, other):
        return isinstance(other, Chunk) and self.op == other.op and self.data == other.data

    def __repr__(self):
        if self.data is not None:
            return f"Chunk(op={self.op}, data={self.data.hex()})"
        return f"Chunk(op={self.op})"


class Script:
    """Bitcoin script"""

    def __init__(self, data: bytes = None):
        self.data = bytearray(data) if data else bytearray()
        self._chunks: Optional[List[Chunk]] = None

    def __add__(self, other):
        """Concatenate scripts"""
        if isinstance(other, Script):
            return Script(bytes(self.data + other.data))
        return Script(bytes(self.data) + bytes(other))

    def __iadd__(self, other):
        """In-place concatenation"""
        if isinstance(other, Script):
            self.data.extend(other.data)
        else:
            self.data.extend(other)
        self._chunks = None
        return self

    def __eq__(self, other):
        return isinstance(other, Script) and self.data == other.data

    def __len__(self):
        return len(self.data)

    def __str__(self):
        return self.to_asm()

    def __repr__(self):
        return f"Script({self.data.hex()!r})"

    def push_data(self, data: bytes):
        """Push data using the smallest length prefix"""
        n_size = len(data)
        if n_size == 0:
            self.data.append(OP_0)
        elif n_size < OP_PUSHDATA1:
            self.data.append(n_size)
        elif n_size <= 0xFF:
            self.data.append(OP_PUSHDATA1)
            self.data.append(n_size)
        elif n_size <= 0xFFFF:
            self.data.append(OP_PUSHDATA2)
            self.data.extend(struct.pack("<H", n_size))
        else:
            self.data.append(OP_PUSHDATA4)
            self.data.extend(struct.pack("<I", n_size))
        self.data.extend(data)
        self._chunks = None
        return self

    def push_int(self, n: int):
        """Push integer to script, using OP_1NEGATE/OP_1..OP_16 where possible"""
        if n == 0:
            return self.push_opcode(OP_0)
        if n == -1 or 1 <= n <= 16:
            return self.push_opcode(OP_1 + n - 1)

        abs_n = abs(n)
        bytes_data = bytearray()
        while abs_n > 0:
            bytes_data.append(abs_n & 0xFF)
            abs_n >>= 8
        # Sign bit lives in the most significant byte
        if bytes_data[-1] & 0x80:
            bytes_data.append(0x80 if n < 0 else 0x00)
        elif n < 0:
            bytes_data[-1] |= 0x80
        return self.push_data(bytes(bytes_data))

    def push_opcode(self, opcode: int):
        """Push opcode to script"""
        if not 0 <= opcode <= 0xFF:
            raise ValueError(f"Opcode out of range: {opcode}")
        self.data.append(opcode)
        self._chunks = None
        return self

    def get_op(self, pc: int) -> Tuple[bool, int, int, Optional[bytes]]:
        """
        Get next opcode from script

        Args:
            pc: Current position in script

        Returns:
            (success, new_pc, opcode, data) tuple
            - success: True if opcode was read
            - new_pc: New position after reading
            - opcode: Opcode value
            - data: Push data (if opcode is push data), None otherwise
        """
        if pc >= len(self.data):
            return False, pc, OP_INVALIDOPCODE, None

        opcode = self.data[pc]
        pc += 1

        data = None
        if opcode <= OP_PUSHDATA4:
            n_size = opcode
            if opcode == OP_PUSHDATA1:
                if pc >= len(self.data):
                    return False, pc, opcode, None
                n_size = self.data[pc]
                pc += 1
            elif opcode == OP_PUSHDATA2:
                if pc + 2 > len(self.data):
                    return False, pc, opcode, None
                n_size = struct.unpack("<H", bytes(self.data[pc : pc + 2]))[0]
                pc += 2
            elif opcode == OP_PUSHDATA4:
                if pc + 4 > len(self.data):
                    return False, pc, opcode, None
                n_size = struct.unpack("<I", bytes(self.data[pc : pc + 4]))[0]
                pc += 4

            if pc + n_size > len(self.data):
                return False, pc, opcode, None

            data = bytes(self.data[pc : pc + n_size])
            pc += n_size

        return True, pc, opcode, data

    @property
    def chunks(self) -> List[Chunk]:
        """
        Decoded chunks; raises ParseError on a truncated push

        Bytes after an OP_RETURN outside any conditional are never executed.
        If they do not decode as whole pushes they are kept as the data of the
        OP_RETURN chunk.
        """
        if self._chunks is None:
            chunks = []
            pc = 0
            depth = 0
            while pc < len(self.data):
                success, new_pc, opcode, data = self.get_op(pc)
                if not success:
                    raise ParseError(f"Truncated push of opcode 0x{opcode:02x}", position=pc)
                if opcode == OP_RETURN and depth == 0 and not self._decodes_from(new_pc):
                    chunks.append(Chunk(OP_RETURN, bytes(self.data[new_pc:])))
                    break
                if opcode in (OP_IF, OP_NOTIF, OP_VERIF, OP_VERNOTIF):
                    depth += 1
                elif opcode == OP_ENDIF and depth:
                    depth -= 1
                chunks.append(Chunk(opcode, data))
                pc = new_pc
            self._chunks = chunks
        return self._chunks

    def _decodes_from(self, pc: int) -> bool:
        while pc < len(self.data):
            success, pc, _, _ = self.get_op(pc)
            if not success:
                return False
        return True

    def is_push_only(self) -> bool:
        return all(chunk.op <= OP_16 for chunk in self.chunks)

    def to_hex(self) -> str:
        return self.data.hex()

    def to_bytes(self) -> bytes:
        return bytes(self.data)

    def to_asm(self) -> str:
        tokens = []
        for chunk in self.chunks:
            if chunk.is_push and chunk.data:
                tokens.append(chunk.data.hex())
            elif chunk.is_push:
                tokens.append("OP_0")
            elif chunk.op == OP_RETURN and chunk.data:
                tokens.append("OP_RETURN " + chunk.data.hex())
            else:
                tokens.append(opcode_name(chunk.op) or f"OP_UNKNOWN{chunk.op}")
        return " ".join(tokens)

    @classmethod
    def from_hex(cls, hex_str: str) -> "Script":
        return from_hex(hex_str)

    @classmethod
    def from_asm(cls, text: str) -> "Script":
        return parse_asm(text)


def parse_asm(text: str) -> Script:
    """
    Parse whitespace-separated ASM into a script

    Tokens are opcode names (OP_ prefixed, case-sensitive), the bare
    numbers 0 and -1, OP_UNKNOWN<n> for unnamed bytes, or even-length hex
    literals which become pushes of exactly those bytes.
    """
    script = Script()
    for token in normalize_aliases(text).split():
        if token in OPCODES:
            opcode = OPCODES[token]
            if opcode in (OP_PUSHDATA1, OP_PUSHDATA2, OP_PUSHDATA4):
                raise ParseError(f"{token} must be written as a hex literal")
            script.push_opcode(opcode)
            continue
        if token == "0":
            script.push_opcode(OP_0)
            continue
        if token == "-1":
            script.push_opcode(OP_1NEGATE)
            continue

        unknown = _UNKNOWN_RE.match(token)
        if unknown and int(unknown.group(1)) <= 0xFF:
            script.push_opcode(int(unknown.group(1)))
            continue

        if _HEX_TOKEN_RE.match(token):
            if len(token) % 2:
                raise ParseError(f"Odd-length hex literal: {token}")
            script.push_data(bytes.fromhex(token))
            continue

        raise ParseError(f"Unknown token in ASM: {token}")
    return script


def to_asm(script: Script) -> str:
    return script.to_asm()


def to_hex(script: Script) -> str:
    return script.to_hex()


def from_hex(hex_str: str) -> Script:
    """Decode hex into a script, checking every push is complete"""
    cleaned = strip_whitespace(hex_str)
    if len(cleaned) % 2:
        raise ParseError("Invalid hex: must be even length")
    try:
        raw = bytes.fromhex(cleaned)
    except ValueError as e:
        raise ParseError(f"Invalid hex: {e}") from e
    script = Script(raw)
    script.chunks  # raises ParseError on a truncated push
    return script


def hex_to_asm(hex_str: str) -> str:
    cleaned = strip_whitespace(hex_str)
    if not cleaned:
        raise ParseError("Invalid hex: empty input")
    return from_hex(cleaned).to_asm()


def detect_and_convert(text: str) -> Tuple[str, bool]:
    """
    Accept either hex or ASM in one field

    Returns (asm, was_hex). Pure even-length hex is decoded and rendered as
    ASM; anything else, including hex that fails to decode, comes back
    trimmed and untouched.
    """
    trimmed = text.strip()
    if not trimmed:
        return "", False

    cleaned = strip_whitespace(trimmed)
    if is_hex(trimmed) and len(cleaned) >= 2:
        try:
            return hex_to_asm(cleaned), True
        except ParseError:
            return trimmed, False
    return trimmed, False


def script_hex_preview(asm: str) -> Dict[str, Union[str, int, None]]:
    """Hex and byte size of ASM without executing it; never raises"""
    if not asm.strip():
        return {"hex": "", "size": 0, "error": None}
    try:
        script = parse_asm(asm)
    except ParseError as e:
        return {"hex": "", "size": 0, "error": str(e)}
    return {"hex": script.to_hex(), "size": len(script), "error": None}


def as_script(value: Union[str, Script]) -> Script:
    """Scripts pass through; strings are parsed as ASM"""
    if isinstance(value, Script):
        return value
    return parse_asm(value)
