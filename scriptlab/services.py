"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

HTTP client for the block explorer: fetch transactions and UTXOs, broadcast
"""

import json
import re
import socket
import urllib.error
import urllib.request
from typing import Any, Dict, Optional

from scriptlab import config
from scriptlab.errors import ContextError, ServiceError
from scriptlab.util import get_logger

logger = get_logger(__name__)

_TXID_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_TXID_FIELDS = ("txid", "txId", "hash", "id")
_MESSAGE_FIELDS = ("error", "message", "msg")


def _request(url: str, body: Optional[bytes] = None) -> urllib.request.Request:
    req = urllib.request.Request(url, data=body, method="POST" if body is not None else "GET")
    req.add_header("User-Agent", config.USER_AGENT)
    if body is not None:
        req.add_header("Content-Type", "application/json")
    return req


def _get(url: str) -> str:
    logger.info("GET %s", url)
    try:
        with urllib.request.urlopen(_request(url), timeout=config.HTTP_TIMEOUT) as response:
            return response.read().decode()
    except urllib.error.HTTPError as e:
        logger.error("GET %s failed: %s %s", url, e.code, e.reason)
        raise ServiceError(f"Request failed: {e.code} {e.reason}") from e
    except (urllib.error.URLError, socket.timeout) as e:
        logger.error("GET %s failed: %s", url, e)
        raise ServiceError(f"Request failed: {e}") from e


def fetch_raw_transaction(txid: str) -> str:
    """Raw hex of a transaction by id"""
    txid = txid.strip()
    if not _TXID_RE.match(txid):
        raise ContextError(f"Invalid txid: {txid!r}")
    try:
        return _get(f"{config.API_BASE_URL}/download/tx/{txid.lower()}/hex").strip()
    except ServiceError as e:
        raise ServiceError(f"Failed to fetch transaction {txid}: {e}") from e


def fetch_utxos(address: str) -> Dict[str, Any]:
    """Unspent outputs of an address as the explorer reports them"""
    if not address:
        raise ContextError("Address is required")
    try:
        text = _get(f"{config.API_BASE_URL}/address/{address}/unspent")
    except ServiceError as e:
        raise ServiceError(f"Failed to fetch UTXOs: {e}") from e
    try:
        return json.loads(text)
    except ValueError as e:
        logger.error("Unspent listing for %s is not JSON", address)
        raise ServiceError("Failed to fetch UTXOs: invalid response from server.") from e


def _field(data: Dict[str, Any], names) -> Optional[str]:
    for name in names:
        if data.get(name):
            return str(data[name])
    return None


def read_broadcast_response(status: int, text: str) -> str:
    """Txid from a broadcast answer, or ServiceError"""
    ok = 200 <= status < 300
    try:
        data = json.loads(text)
    except ValueError:
        if not ok:
            raise ServiceError(f"Broadcast failed: {text or status}")
        raise ServiceError("Broadcast failed: invalid response from server.")

    if not isinstance(data, dict):
        if isinstance(data, str) and ok and _TXID_RE.match(data):
            return data
        raise ServiceError(f"Broadcast failed: {text or status}")

    message = _field(data, _MESSAGE_FIELDS)
    if not ok:
        raise ServiceError(f"Broadcast failed: {message or text or status}")
    if message and "reject" in message.lower():
        raise ServiceError(f"Broadcast rejected: {message}")

    txid = _field(data, _TXID_FIELDS)
    if txid is None:
        raise ServiceError(
            "Broadcast response did not include a transaction ID. "
            "Check the transaction on a block explorer before retrying."
        )
    return txid


def broadcast_transaction(tx_hex: str) -> str:
    """Submit a raw transaction; returns the txid the server reports"""
    url = f"{config.API_BASE_URL}/tx/broadcast"
    body = json.dumps({"raw": tx_hex.strip()}).encode()
    logger.info("POST %s (%d bytes)", url, len(tx_hex) // 2)
    try:
        with urllib.request.urlopen(_request(url, body), timeout=config.HTTP_TIMEOUT) as response:
            status, text = response.status, response.read().decode()
    except urllib.error.HTTPError as e:
        status, text = e.code, e.read().decode(errors="replace")
    except (urllib.error.URLError, socket.timeout) as e:
        logger.error("POST %s failed: %s", url, e)
        raise ServiceError(f"Broadcast failed: {e}") from e

    try:
        txid = read_broadcast_response(status, text)
    except ServiceError as e:
        logger.error("%s", e)
        raise
    logger.info("Broadcast accepted: %s", txid)
    return txid
