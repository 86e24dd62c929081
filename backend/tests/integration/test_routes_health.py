"""
Integration tests for the health route.
Version: 1.0.0
"""
import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def test_health():
    from catalog_sync.main import app

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
