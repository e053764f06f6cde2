# tests/test_external_service.py
import asyncio

import httpx
import pytest

from pointcloud_sys.app.services.external_service import (
    ExternalServiceError,
    call_external_http,
    call_external_upload,
)


def flaky_transport(responses):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        item = responses[min(len(calls), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler), calls


def test_retries_until_success():
    transport, calls = flaky_transport([
        httpx.Response(503),
        httpx.ConnectError("connection refused"),
        httpx.Response(200, json={"scores": [1]}),
    ])

    data = asyncio.run(call_external_http(
        "http://backend/predict", {"points": []}, retries=3, backoff=0, transport=transport
    ))

    assert data == {"scores": [1]}
    assert len(calls) == 3


def test_gives_up_after_retries():
    transport, calls = flaky_transport([httpx.Response(500)])

    with pytest.raises(ExternalServiceError, match="after 3 attempts"):
        asyncio.run(call_external_http("http://backend/predict", {}, retries=2, backoff=0, transport=transport))
    assert len(calls) == 3


def test_zero_retries_means_single_call():
    transport, calls = flaky_transport([httpx.Response(502)])

    with pytest.raises(ExternalServiceError):
        asyncio.run(call_external_http("http://backend/predict", {}, retries=0, backoff=0, transport=transport))
    assert len(calls) == 1


def test_client_error_not_retried():
    transport, calls = flaky_transport([httpx.Response(400, json={"error": "bad model"})])

    with pytest.raises(ExternalServiceError) as exc:
        asyncio.run(call_external_http("http://backend/predict", {}, retries=5, backoff=0, transport=transport))
    assert exc.value.status_code == 400
    assert len(calls) == 1


def test_upload_sends_multipart():
    transport, calls = flaky_transport([httpx.Response(200, json={"points": [[0, 0, 0]]})])

    data = asyncio.run(call_external_upload(
        "http://backend/reconstruct",
        files={"file": ("a.png", b"\x89PNG", "image/png")},
        backoff=0,
        transport=transport,
    ))

    assert data["points"] == [[0, 0, 0]]
    assert calls[0].headers["content-type"].startswith("multipart/form-data")
