"""
Tests for the health check endpoint.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.urls import reverse


@pytest.mark.django_db
class TestHealthCheck:
    """Tests for GET /health/."""

    def test_healthy(self, client, stripe_settings):
        """Should report a connected database and configured Stripe."""
        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "stripe": "configured",
        }

    def test_stripe_not_configured(self, client, settings):
        """Should stay healthy but flag missing Stripe keys."""
        settings.STRIPE_SECRET_KEY = ""

        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json()["stripe"] == "not_configured"

    def test_database_unreachable(self, client, stripe_settings):
        """Should return 503 when the database cannot be reached."""
        with patch("core.views.connection") as mock_connection:
            mock_connection.cursor.side_effect = DatabaseError("down")

            response = client.get(reverse("health_check"))

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
        assert response.json()["status"] == "unhealthy"
