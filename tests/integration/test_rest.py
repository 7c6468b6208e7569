"""Integration tests for the single-shot route (GET /<name>)."""

from __future__ import annotations

import json
import re
from unittest.mock import patch

import pytest
from conftest import (
    ExplodingCapability,
    NotFoundCapability,
    RepeatingCapability,
    SilentCapability,
    StaticCapability,
)
from starlette.testclient import TestClient

from stream_hub.app import create_app
from stream_hub.capability import RequestContext, Sink
from stream_hub.config import HubConfig
from stream_hub.errors import EncodingError
from stream_hub.hub import Hub


def client_for(name: str, capability) -> TestClient:
    return TestClient(Hub().register(name, capability).create_app())


# =============================================================================
# Tests: Envelope wrapping
# =============================================================================


class TestSingleShot:
    """Test the request/response form."""

    def test_hello_world(self):
        client = client_for("test", StaticCapability(b'{"message":"Hello, World!"}'))

        response = client.get("/test")

        assert response.status_code == 200
        assert response.json() == {"data": {"message": "Hello, World!"}}

    def test_content_type_is_json(self):
        client = client_for("test", StaticCapability(b"{}"))

        response = client.get("/test")

        assert response.headers["content-type"] == "application/json"

    def test_plain_text_wrapped_as_string(self):
        client = client_for("test", StaticCapability("ok"))

        assert client.get("/test").json() == {"data": "ok"}

    def test_max_count_forced_to_one(self):
        capability = StaticCapability("{}")
        client = client_for("test", capability)

        client.get("/test?max_count=50")

        assert len(capability.contexts) == 1
        context = capability.contexts[0]
        assert context.max_count == 1
        assert context.query_params["max_count"] == "1"

    def test_other_query_params_passed_through(self):
        capability = StaticCapability("{}")
        client = client_for("test", capability)

        client.get("/test?symbol=ABC")

        assert capability.contexts[0].query_params["symbol"] == "ABC"

    def test_repeating_capability_returns_one_envelope(self):
        capability = RepeatingCapability({"endpoint": "e"})
        client = client_for("test", capability)

        response = client.get("/test?max_count=5")

        assert response.json() == {"data": {"endpoint": "e"}}
        assert capability.max_counts == [1]
        assert capability.produced == 1

    def test_empty_output_is_empty_string(self):
        client = client_for("test", SilentCapability())

        response = client.get("/test")

        assert response.status_code == 200
        assert response.json() == {"data": ""}

    def test_unknown_name_is_404(self):
        client = client_for("test", StaticCapability("{}"))

        assert client.get("/other").status_code == 404

    def test_post_not_allowed(self):
        client = client_for("test", StaticCapability("{}"))

        assert client.post("/test").status_code == 405


# =============================================================================
# Tests: Errors
# =============================================================================


class TestSingleShotErrors:
    """Test error relaying and internal failures."""

    def test_capability_error_relayed_verbatim(self):
        client = client_for("test", NotFoundCapability())

        response = client.get("/test")

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {
            "errors": [{"status": "404", "title": "Not Found", "detail": "No such thing"}]
        }

    def test_capability_exception_is_500_envelope(self):
        client = client_for("test", ExplodingCapability())

        response = client.get("/test")

        assert response.status_code == 500
        error = response.json()["errors"][0]
        assert error["status"] == "500"
        assert error["title"] == "Internal Server Error"

    def test_encoding_failure_is_500_envelope(self):
        client = client_for("test", StaticCapability("{}"))

        with patch(
            "stream_hub.routes.endpoints.encode_success",
            side_effect=EncodingError("cannot encode"),
        ):
            response = client.get("/test")

        assert response.status_code == 500
        assert response.json()["errors"][0]["detail"] == "Error encoding response"

    def test_capability_headers_copied_but_content_type_forced(self):
        class HeaderCapability:
            def handle(self, context: RequestContext, sink: Sink) -> None:
                sink.headers["X-Source"] = "feed"
                sink.headers["Content-Type"] = "text/plain"
                sink.write("hi")

        client = client_for("test", HeaderCapability())

        response = client.get("/test")

        assert response.headers["x-source"] == "feed"
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"data": "hi"}


# =============================================================================
# Tests: Application
# =============================================================================


class TestApplication:
    """Test the shipped application."""

    @pytest.fixture
    def client(self) -> TestClient:
        return TestClient(create_app(HubConfig(date_interval=0.01)))

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "endpoints": ["date"]}

    def test_date(self, client: TestClient):
        response = client.get("/date")

        assert response.status_code == 200
        stamp = response.json()["data"]["UTC"]
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", stamp)

    def test_date_stream(self, client: TestClient):
        response = client.get("/date/stream?max_count=3")

        events = [e for e in response.text.split("\n\n") if e]
        assert len(events) == 3
        for event in events:
            assert event.startswith("data: ")
            assert "UTC" in json.loads(event[len("data: ") :])["data"]
