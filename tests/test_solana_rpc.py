import http.client
import io
import json
import urllib.error

import pytest

from solana_pay_qr.pay import PollerState, SolanaRpcClient, TransientLedgerError, VerificationPoller
from solana_pay_qr.pay import solana_rpc

ENDPOINT = "https://rpc.example.invalid"


class FakeResponse:
    status = 200

    def __init__(self, body):
        self._body = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class FakeTransport:
    """Replays scripted responses for urlopen and records sent payloads."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request, timeout=None):
        self.requests.append(json.loads(request.data.decode("utf-8")))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return FakeResponse(response)


@pytest.fixture
def transport(monkeypatch):
    def install(*responses):
        fake = FakeTransport(*responses)
        monkeypatch.setattr(solana_rpc.urllib.request, "urlopen", fake)
        monkeypatch.setattr(solana_rpc.time, "sleep", lambda seconds: None)
        return fake

    return install


def _http_error(code):
    return urllib.error.HTTPError(ENDPOINT, code, "error", {}, io.BytesIO(b""))


def test_signatures_are_parsed_newest_first(transport):
    fake = transport(
        {
            "jsonrpc": "2.0",
            "id": 1,
            "result": [
                {"signature": "sig-new", "slot": 20, "blockTime": 1700000001, "err": None},
                {"signature": "sig-old", "slot": 10, "blockTime": None, "err": {"x": 1}},
            ],
        }
    )
    signatures = SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref", limit=10)

    assert [info.signature for info in signatures] == ["sig-new", "sig-old"]
    assert signatures[0].slot == 20
    assert signatures[0].block_time == 1700000001
    assert signatures[1].err == {"x": 1}
    assert fake.requests[0]["method"] == "getSignaturesForAddress"
    assert fake.requests[0]["params"] == ["ref", {"limit": 10, "commitment": "confirmed"}]


def test_empty_signature_result(transport):
    transport({"jsonrpc": "2.0", "id": 1, "result": []})
    assert SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref") == []


def test_missing_transaction_is_none(transport):
    fake = transport({"jsonrpc": "2.0", "id": 1, "result": None})
    assert SolanaRpcClient(ENDPOINT).get_transaction("sig", "confirmed") is None
    assert fake.requests[0]["params"] == [
        "sig",
        {"encoding": "jsonParsed", "commitment": "confirmed", "maxSupportedTransactionVersion": 0},
    ]


@pytest.mark.parametrize(
    "meta,succeeded",
    [
        ({"err": None, "fee": 5000}, True),
        ({"err": {"InstructionError": [0, "Custom"]}}, False),
        (None, False),
    ],
)
def test_transaction_outcome_follows_meta_err(transport, meta, succeeded):
    transport({"jsonrpc": "2.0", "id": 1, "result": {"slot": 42, "meta": meta}})
    status = SolanaRpcClient(ENDPOINT).get_transaction("sig", "confirmed")

    assert status.signature == "sig"
    assert status.succeeded is succeeded
    assert status.slot == 42


def test_rpc_error_member_is_transient(transport):
    transport({"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "busy"}})
    with pytest.raises(TransientLedgerError, match="busy"):
        SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref")


def test_invalid_json_is_transient(transport):
    transport(b"<html>bad gateway</html>")
    with pytest.raises(TransientLedgerError):
        SolanaRpcClient(ENDPOINT).get_transaction("sig")


def test_rate_limit_is_retried(transport):
    fake = transport(_http_error(429), {"jsonrpc": "2.0", "id": 2, "result": []})
    assert SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref") == []
    assert len(fake.requests) == 2


def test_other_http_errors_fail_immediately(transport):
    fake = transport(_http_error(500))
    with pytest.raises(TransientLedgerError, match="status=500"):
        SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref")
    assert len(fake.requests) == 1


def test_connection_errors_exhaust_retries(transport):
    errors = [urllib.error.URLError("connection refused") for _ in range(3)]
    fake = transport(*errors)
    with pytest.raises(TransientLedgerError, match="Failed to reach"):
        SolanaRpcClient(ENDPOINT, max_retries=2).get_transaction("sig")
    assert len(fake.requests) == 3


def test_request_ids_increase(transport):
    fake = transport(
        {"jsonrpc": "2.0", "id": 1, "result": []},
        {"jsonrpc": "2.0", "id": 2, "result": []},
    )
    client = SolanaRpcClient(ENDPOINT)
    client.get_signatures_for_address("ref")
    client.get_signatures_for_address("ref")
    assert [request["id"] for request in fake.requests] == [1, 2]


def test_undecodable_body_is_transient(transport):
    transport(b"\xff\xfe not utf8")
    with pytest.raises(TransientLedgerError, match="invalid JSON"):
        SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref")


def test_incomplete_read_is_retried(transport):
    fake = transport(http.client.IncompleteRead(b"{"), {"jsonrpc": "2.0", "id": 2, "result": []})
    assert SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref") == []
    assert len(fake.requests) == 2


def test_http_exceptions_exhaust_retries(transport):
    transport(http.client.RemoteDisconnected("closed"), http.client.IncompleteRead(b""))
    with pytest.raises(TransientLedgerError, match="Failed to reach"):
        SolanaRpcClient(ENDPOINT, max_retries=1).get_transaction("sig")


@pytest.mark.parametrize("result", [{"signature": "sig"}, "sig", [["sig"]], ["sig"]])
def test_malformed_signature_results_are_transient(transport, result):
    transport({"jsonrpc": "2.0", "id": 1, "result": result})
    with pytest.raises(TransientLedgerError, match="Unexpected"):
        SolanaRpcClient(ENDPOINT).get_signatures_for_address("ref")


@pytest.mark.parametrize("result", [["tx"], "tx", {"slot": 1, "meta": "ok"}])
def test_malformed_transaction_results_are_transient(transport, result):
    transport({"jsonrpc": "2.0", "id": 1, "result": result})
    with pytest.raises(TransientLedgerError, match="Unexpected"):
        SolanaRpcClient(ENDPOINT).get_transaction("sig")


def test_poller_keeps_polling_through_garbled_responses(transport):
    transport(
        b"\xff\xfe not utf8",
        {"jsonrpc": "2.0", "id": 2, "result": [{"signature": "sig-1"}]},
        {"jsonrpc": "2.0", "id": 3, "result": {"slot": 5, "meta": {"err": None}}},
    )
    errors = []
    confirmed = []
    poller = VerificationPoller(SolanaRpcClient(ENDPOINT), interval_sec=3600)
    poller.start("ref", on_confirmed=confirmed.append, on_error=errors.append)

    assert poller.tick() is True
    assert poller.state is PollerState.POLLING
    assert poller.join(timeout=0) is False
    assert len(errors) == 1

    assert poller.tick() is False
    assert confirmed == ["sig-1"]
