"""
Tests for the block explorer client
"""

import io
import json
import urllib.error
import urllib.request

import pytest

from .context import scriptlab
from .vectors import RPUZZLE_SOURCE_TX
from scriptlab import config
from scriptlab.services import read_broadcast_response

TXID = "ab" * 32


class FakeResponse:
    def __init__(self, body, status=200):
        self.status = status
        self._body = body.encode() if isinstance(body, str) else body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def requests(monkeypatch):
    """Record outgoing requests and answer from a queue"""
    sent = []
    answers = []

    def urlopen(req, timeout=None):
        sent.append(req)
        answer = answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    monkeypatch.setattr(urllib.request, "urlopen", urlopen)
    return sent, answers


def _http_error(code, body):
    return urllib.error.HTTPError("http://test", code, "error", None, io.BytesIO(body.encode()))


def test_fetch_raw_transaction(requests):
    """Test the raw hex endpoint and user agent"""
    sent, answers = requests
    answers.append(FakeResponse(RPUZZLE_SOURCE_TX + "\n"))

    assert scriptlab.fetch_raw_transaction(TXID) == RPUZZLE_SOURCE_TX
    assert sent[0].full_url == f"{config.API_BASE_URL}/download/tx/{TXID}/hex"
    assert sent[0].get_method() == "GET"
    assert sent[0].get_header("User-agent") == config.USER_AGENT


def test_fetch_raw_transaction_errors(requests):
    """Test bad txids and failed requests"""
    sent, answers = requests
    with pytest.raises(scriptlab.ContextError):
        scriptlab.fetch_raw_transaction("abc")
    assert sent == []

    answers.append(_http_error(404, "not found"))
    with pytest.raises(scriptlab.ServiceError, match="404"):
        scriptlab.fetch_raw_transaction(TXID)

    answers.append(urllib.error.URLError("no route"))
    with pytest.raises(scriptlab.ServiceError):
        scriptlab.fetch_raw_transaction(TXID)


def test_fetch_utxos(requests):
    """Test the unspent listing is parsed as JSON"""
    sent, answers = requests
    listing = {"unspent": [{"txid": TXID, "vout": 0, "satoshis": 1000}]}
    answers.append(FakeResponse(json.dumps(listing)))

    assert scriptlab.fetch_utxos("1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH") == listing
    assert sent[0].full_url.endswith("/address/1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH/unspent")

    answers.append(FakeResponse("<html>"))
    with pytest.raises(scriptlab.ServiceError, match="invalid response"):
        scriptlab.fetch_utxos("1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH")

    with pytest.raises(scriptlab.ContextError):
        scriptlab.fetch_utxos("")


def test_broadcast_transaction(requests):
    """Test the broadcast body and txid extraction"""
    sent, answers = requests
    answers.append(FakeResponse(json.dumps({"txid": TXID})))

    assert scriptlab.broadcast_transaction(RPUZZLE_SOURCE_TX) == TXID
    assert sent[0].get_method() == "POST"
    assert sent[0].full_url == f"{config.API_BASE_URL}/tx/broadcast"
    assert json.loads(sent[0].data) == {"raw": RPUZZLE_SOURCE_TX}
    assert sent[0].get_header("Content-type") == "application/json"


def test_broadcast_transaction_http_error(requests):
    """Test an HTTP error body is reported"""
    _, answers = requests
    answers.append(_http_error(400, json.dumps({"error": "missing inputs"})))
    with pytest.raises(scriptlab.ServiceError, match="Broadcast failed: missing inputs"):
        scriptlab.broadcast_transaction(RPUZZLE_SOURCE_TX)

    answers.append(urllib.error.URLError("timed out"))
    with pytest.raises(scriptlab.ServiceError, match="Broadcast failed"):
        scriptlab.broadcast_transaction(RPUZZLE_SOURCE_TX)


def test_read_broadcast_response():
    """Test each way a broadcast answer can look"""
    assert read_broadcast_response(200, json.dumps({"txid": TXID})) == TXID
    assert read_broadcast_response(200, json.dumps({"txId": TXID})) == TXID
    assert read_broadcast_response(201, json.dumps({"hash": TXID})) == TXID
    assert read_broadcast_response(200, json.dumps({"id": TXID})) == TXID
    assert read_broadcast_response(200, json.dumps(TXID)) == TXID

    with pytest.raises(scriptlab.ServiceError, match="Broadcast rejected: txn-mempool-conflict rejected"):
        read_broadcast_response(200, json.dumps({"message": "txn-mempool-conflict rejected"}))

    with pytest.raises(scriptlab.ServiceError, match="did not include a transaction ID"):
        read_broadcast_response(200, json.dumps({"status": "ok"}))

    with pytest.raises(scriptlab.ServiceError, match="invalid response from server"):
        read_broadcast_response(200, "OK")

    with pytest.raises(scriptlab.ServiceError, match="Broadcast failed: Bad Gateway"):
        read_broadcast_response(502, "Bad Gateway")

    with pytest.raises(scriptlab.ServiceError, match="Broadcast failed: 500"):
        read_broadcast_response(500, "")

    with pytest.raises(scriptlab.ServiceError, match="Broadcast failed: bad-txns"):
        read_broadcast_response(400, json.dumps({"msg": "bad-txns"}))
