from __future__ import annotations

import hashlib
import json

from fastapi.testclient import TestClient

from africa_payments.main import create_app
from africa_payments.orchestrator import AfricaPaymentsProvider
from africa_payments.providers.bogus import BogusProvider
from africa_payments.providers.config import PaydunyaConfig, TaarihConfig
from africa_payments.providers.paydunya import PaydunyaProvider
from africa_payments.providers.taarih import TaarihProvider

PAYDUNYA = PaydunyaConfig(master_key="master-key", private_key="p", public_key="k", token="t")
BOGUS_BODY = {
    "success": True,
    "amount": 100,
    "transactionId": "tx-w",
    "transactionReference": "wave-transaction-reference",
    "paymentMethod": "WAVE",
    "currency": "XOF",
}


def _client(*providers) -> tuple[TestClient, AfricaPaymentsProvider]:
    payments = AfricaPaymentsProvider(list(providers))
    return TestClient(create_app(payments), raise_server_exceptions=False), payments


def test_raw_provider_receives_bytes_and_reports_event():
    client, payments = _client(BogusProvider())
    received: list = []
    payments.on_all(received.append)

    r = client.post("/v1/webhooks/BOGUS", content=json.dumps(BOGUS_BODY))

    assert r.status_code == 200, r.text
    assert r.json() == {"ok": True, "provider": "BOGUS", "event": "PAYMENT_SUCCESSFUL"}
    assert received[0].transaction_id == "tx-w"


def test_provider_path_is_normalized():
    client, _ = _client(BogusProvider())
    r = client.post("/v1/webhooks/bogus", content=json.dumps(dict(BOGUS_BODY, success=False)))
    assert r.status_code == 200
    assert r.json()["event"] == "PAYMENT_FAILED"


def test_provider_path_accepts_dashes_for_custom_names():
    client, _ = _client(BogusProvider(name="BOGUS_SANDBOX"))
    r = client.post("/v1/webhooks/bogus-sandbox", content=json.dumps(BOGUS_BODY))
    assert r.status_code == 200
    assert r.json()["provider"] == "BOGUS_SANDBOX"


def test_unknown_provider_is_404():
    client, _ = _client(BogusProvider())
    r = client.post("/v1/webhooks/CINETPAY", content=b"{}")
    assert r.status_code == 404
    assert r.json()["detail"] == {"error": "UNKNOWN_PROVIDER"}


def test_parsed_provider_gets_decoded_json(recorder):
    client, _ = _client(PaydunyaProvider(PAYDUNYA, http=recorder.client()), BogusProvider())
    body = {
        "hash": hashlib.sha512(b"master-key").hexdigest(),
        "status": "completed",
        "response_code": "00",
        "invoice": {"token": "invoice-token", "total_amount": "2500"},
        "custom_data": {"transaction_id": "tx-pd"},
        "customer": {"payment_method": "orange_money_senegal"},
    }

    r = client.post("/v1/webhooks/PAYDUNYA", json=body)

    assert r.status_code == 200
    assert r.json() == {"ok": True, "provider": "PAYDUNYA", "event": "PAYMENT_SUCCESSFUL"}


def test_parsed_provider_with_bad_hash_reports_no_event(recorder):
    client, _ = _client(PaydunyaProvider(PAYDUNYA, http=recorder.client()))
    r = client.post("/v1/webhooks/PAYDUNYA", json={"hash": "nope", "status": "completed"})
    assert r.status_code == 200
    assert r.json()["event"] is None


def test_parsed_provider_with_malformed_json_reports_no_event(recorder):
    client, _ = _client(PaydunyaProvider(PAYDUNYA, http=recorder.client()))
    r = client.post("/v1/webhooks/PAYDUNYA", content=b"not json")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "provider": "PAYDUNYA", "event": None}


def test_provider_error_maps_to_502(recorder):
    recorder.add("POST", "/auth/signin-end-user", {"message": "Service down"}, status=500)

    async def no_sleep(_seconds):
        return None

    taarih = TaarihProvider(
        TaarihConfig(phone_number="771112233", password="x", visitor_id="v"),
        http=recorder.client(),
        sleep=no_sleep,
    )
    client, _ = _client(taarih)

    r = client.post("/v1/webhooks/TAARIH", json={"transactionId": "int-1", "maxAttempts": 1})

    assert r.status_code == 502
    assert r.json()["detail"] == {"error": "UNKNOWN_ERROR"}


class _EndpointProvider(BogusProvider):
    def __init__(self, fail: bool = False):
        super().__init__(name="STRIPE")
        self.fail = fail
        self.ensured = 0

    async def ensure_webhook_endpoint(self):
        self.ensured += 1
        if self.fail:
            raise RuntimeError("stripe unreachable")
        return "whsec"


def test_startup_installs_webhook_endpoints():
    provider = _EndpointProvider()
    app = create_app(AfricaPaymentsProvider([provider]))
    with TestClient(app):
        pass
    assert provider.ensured == 1


def test_startup_survives_endpoint_install_failure(caplog):
    provider = _EndpointProvider(fail=True)
    app = create_app(AfricaPaymentsProvider([provider]))
    with TestClient(app) as client:
        r = client.post("/v1/webhooks/STRIPE", content=json.dumps(BOGUS_BODY))
    assert r.status_code == 200
    assert "webhook endpoint install failed" in caplog.text
