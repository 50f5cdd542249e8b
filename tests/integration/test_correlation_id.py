import logging
import uuid

import pytest

pytestmark = pytest.mark.integration

PATH = "/orders/user/user-1/"


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get(PATH, HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get(PATH)
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get(PATH, HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )

    def test_correlation_id_reaches_collaborators(self, api_client_with_correlation, wired_api):
        api_client, cid = api_client_with_correlation
        seen = []
        catalog, _ = wired_api
        original_fetch = catalog.fetch_snapshot

        def recording_fetch(product_id):
            from modules.core.middleware import get_correlation_id

            seen.append(get_correlation_id())
            return original_fetch(product_id)

        catalog.fetch_snapshot = recording_fetch
        api_client.post(
            "/orders/",
            {"user_id": "user-1", "items": [{"product_id": "p1", "quantity": 1}]},
            format="json",
        )
        assert seen == [cid]
