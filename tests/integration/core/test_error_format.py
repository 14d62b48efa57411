"""Every error response is a JSON object with a ``detail`` message."""

from unittest.mock import patch

import pytest
from django.db import OperationalError

from modules.orders.services import OrderService

pytestmark = pytest.mark.integration


class TestErrorFormat:
    def test_unauthenticated(self, api_client):
        response = api_client.get("/api/v1/user/orders/")
        assert response.status_code == 401
        assert "detail" in response.json()

    def test_malformed_json(self, authenticated_client, buyer):
        response = authenticated_client(buyer).post(
            "/api/v1/orders/", data="{", content_type="application/json"
        )
        assert response.status_code == 400
        assert "detail" in response.json()

    def test_domain_error(self, authenticated_client, buyer):
        response = authenticated_client(buyer).get("/api/v1/jobs/")
        assert response.status_code == 403
        assert isinstance(response.json()["detail"], str)

    def test_storage_timeout_is_503(self, authenticated_client, rider):
        with patch.object(
            OrderService, "list_open_jobs", side_effect=OperationalError("timeout")
        ):
            response = authenticated_client(rider).get("/api/v1/jobs/")

        assert response.status_code == 503
        assert response["Retry-After"] == "1"
        assert "detail" in response.json()
