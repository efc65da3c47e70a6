"""Unit tests for the aiohttp webhook server."""

import pytest
from aiohttp import test_utils
from prometheus_client import CONTENT_TYPE_LATEST

from kube_webhooks.webhooks.admission import AdmissionControlHandler, deny
from kube_webhooks.webhooks.conversion import ResourceConversionHandler
from kube_webhooks.webhooks.server import WebhookServer, create_ssl_context

ADMISSION_REVIEW = {
    "apiVersion": "admission.k8s.io/v1",
    "kind": "AdmissionReview",
    "request": {
        "uid": "705ab4f5-6393-11e8-b7cc-42010a800002",
        "resource": {"group": "example.com", "version": "v1", "resource": "cogs"},
        "object": {"spec": {"size": 3}},
    },
}


class _Identity(ResourceConversionHandler):
    def convert(self, resource, desired_api_version):
        return {**resource, "apiVersion": desired_api_version}


@pytest.fixture
def server():
    handler = AdmissionControlHandler()

    @handler.validate("example.com/v1/cogs")
    def validate_cogs(review):
        if review.request["object"]["spec"]["size"] > 2:
            return deny(review, "too big")
        return review

    async def exploding(review):
        raise RuntimeError("boom")

    server = WebhookServer(port=0)
    server.add_webhook("/admission-review/validating", handler, webhook_type="validating")
    server.add_webhook("/admission-review/mutating", handler, webhook_type="mutating")
    server.add_webhook("/resource-conversion", _Identity())
    server.add_webhook("/exploding", exploding)
    return server


async def _client(server: WebhookServer) -> test_utils.TestClient:
    client = test_utils.TestClient(test_utils.TestServer(server.app))
    await client.start_server()
    return client


class TestWebhookServer:
    @pytest.mark.asyncio
    async def test_validating_webhook_denies(self, server):
        client = await _client(server)
        try:
            resp = await client.post("/admission-review/validating", json=ADMISSION_REVIEW)
            body = await resp.json()
        finally:
            await client.close()

        assert resp.status == 200
        assert body["apiVersion"] == "admission.k8s.io/v1"
        assert body["kind"] == "AdmissionReview"
        assert body["response"]["uid"] == ADMISSION_REVIEW["request"]["uid"]
        assert body["response"]["allowed"] is False
        assert body["response"]["status"] == {"code": 400, "message": "too big"}

    @pytest.mark.asyncio
    async def test_admission_review_allowed_by_default(self, server):
        client = await _client(server)
        try:
            resp = await client.post("/admission-review/mutating", json=ADMISSION_REVIEW)
            body = await resp.json()
        finally:
            await client.close()

        assert resp.status == 200
        assert body["response"] == {
            "uid": ADMISSION_REVIEW["request"]["uid"],
            "allowed": True,
        }

    @pytest.mark.asyncio
    async def test_conversion_review(self, server):
        review = {
            "apiVersion": "apiextensions.k8s.io/v1",
            "kind": "ConversionReview",
            "request": {
                "uid": "5e4f3a1c",
                "desiredAPIVersion": "example.com/v1",
                "objects": [{"apiVersion": "example.com/v1beta1", "kind": "Cog"}],
            },
        }
        client = await _client(server)
        try:
            resp = await client.post("/resource-conversion", json=review)
            body = await resp.json()
        finally:
            await client.close()

        assert resp.status == 200
        assert body["kind"] == "ConversionReview"
        assert "allowed" not in body["response"]
        assert body["response"]["result"] == {"status": "Success"}
        assert body["response"]["convertedObjects"] == [
            {"apiVersion": "example.com/v1", "kind": "Cog"}
        ]

    @pytest.mark.asyncio
    async def test_invalid_json_is_rejected(self, server):
        client = await _client(server)
        try:
            resp = await client.post(
                "/admission-review/validating",
                data="{not json",
                headers={"Content-Type": "application/json"},
            )
        finally:
            await client.close()

        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_body_without_uid_is_rejected(self, server):
        client = await _client(server)
        try:
            resp = await client.post(
                "/admission-review/validating",
                json={"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview"},
            )
        finally:
            await client.close()

        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_handler_exception_returns_500(self, server):
        client = await _client(server)
        try:
            resp = await client.post("/exploding", json=ADMISSION_REVIEW)
            body = await resp.json()
        finally:
            await client.close()

        assert resp.status == 500
        assert "RuntimeError" in body["error"]

    @pytest.mark.asyncio
    async def test_healthz(self, server):
        client = await _client(server)
        try:
            resp = await client.get("/healthz")
            text = await resp.text()
        finally:
            await client.close()

        assert resp.status == 200
        assert text == "ok"

    @pytest.mark.asyncio
    async def test_metrics_count_reviews(self, server):
        client = await _client(server)
        try:
            await client.post("/admission-review/validating", json=ADMISSION_REVIEW)
            resp = await client.get("/metrics")
            text = await resp.text()
        finally:
            await client.close()

        assert resp.status == 200
        assert "kube_webhooks_webhook_requests_total" in text
        assert 'path="/admission-review/validating"' in text
        assert 'allowed="false"' in text

    @pytest.mark.asyncio
    async def test_metrics_use_prometheus_content_type(self, server):
        client = await _client(server)
        try:
            resp = await client.get("/metrics")
            await resp.read()
        finally:
            await client.close()

        assert resp.status == 200
        assert resp.headers["Content-Type"] == CONTENT_TYPE_LATEST


def test_tls_context_loads_mounted_certificate(tmp_path, bundle):
    (tmp_path / "tls.crt").write_bytes(bundle.tls_crt)
    (tmp_path / "tls.key").write_bytes(bundle.tls_key)

    context = create_ssl_context(str(tmp_path))

    assert context is not None

