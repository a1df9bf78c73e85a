"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Settings for scriptlab

Every value is a plain module constant. A handful can be overridden from the
environment (SCRIPTLAB_*) when the module is first imported.
"""

import os


def _env(name: str, default):
    value = os.environ.get("SCRIPTLAB_" + name)
    if value is None or value == "":
        return default
    return type(default)(value)


# Amounts
COIN = 100000000
# Outputs at or below this value are folded into the fee
DUST_THRESHOLD = 546

# Size estimates (bytes)
TX_OVERHEAD = 10
P2PKH_INPUT_SIZE = 148
P2PKH_OUTPUT_SIZE = 34
# txid + vout + sequence + script length varint
INPUT_OVERHEAD = 40
RPUZZLE_INPUT_SIZE = 148

# Fee rate in satoshis per byte
DEFAULT_FEE_RATE = _env("FEE_RATE", 0.5)

# Tracer
MAX_TRACE_STEPS = 10000

# Interpreter limits (bytes). Operations that would build a larger stack
# element fail before allocating it.
MAX_SCRIPT_ELEMENT_SIZE = _env("MAX_ELEMENT_SIZE", 32000000)
MAX_SCRIPT_NUM_LENGTH = 750000

# Synthetic spend context
NULL_TXID = "00" * 32
SYNTHETIC_SATOSHIS = 100000

# Sequence numbers
SEQUENCE_FINAL = 0xFFFFFFFF
SEQUENCE_LOCKTIME_ENABLED = 0xFFFFFFFE

# Network
NETWORK = _env("NETWORK", "mainnet")
ADDRESS_VERSIONS = {"mainnet": 0x00, "testnet": 0x6F}
WIF_VERSIONS = {"mainnet": 0x80, "testnet": 0xEF}

# External services
API_BASE_URL = _env("API_URL", "https://api.bitails.io")
HTTP_TIMEOUT = _env("HTTP_TIMEOUT", 15)
USER_AGENT = "scriptlab/0.1.0"

# Logging
LOG_LEVEL = _env("LOG_LEVEL", "WARNING")
