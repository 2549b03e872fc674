"""
This module contains pytest fixtures and configuration for testing.
"""
import json
import os
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Add the project's root directory to the system path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

os.environ.setdefault("ENV", "local")
os.environ.setdefault("FIREBASE_CREDENTIALS_JSON_CONTENT", json.dumps({"type": "service_account"}))

# Import the main app without real Firebase credentials
with patch('firebase_admin.credentials.Certificate'), patch('firebase_admin.initialize_app'):
    from main import app

from api.sales.cart import CartRegistry, get_cart_registry
from tests.fakes import FakeFirestore, fake_transactional


@pytest.fixture(autouse=True)
def no_redis():
    """Run every test with caching disabled."""
    with patch('api.common.cache.get_redis_client', return_value=None):
        yield


@pytest.fixture
def test_app():
    """
    Create a FastAPI test application.
    """
    return app


@pytest.fixture
def cart_registry(test_app):
    """
    A fresh cart registry injected into the app for the duration of a test.
    """
    registry = CartRegistry()
    test_app.dependency_overrides[get_cart_registry] = lambda: registry
    yield registry
    test_app.dependency_overrides.pop(get_cart_registry, None)


@pytest.fixture
def client(test_app, cart_registry):
    """
    Create a test client for the FastAPI application.
    """
    return TestClient(test_app)


@pytest.fixture
def mock_firestore():
    """
    Create a mock for the Firestore client.
    """
    with patch('firebase_admin.firestore.client') as mock:
        firestore_mock = MagicMock()
        mock.return_value = firestore_mock
        yield firestore_mock


@pytest.fixture
def fake_db():
    """
    An in-memory Firestore returned by firestore.client(), with transactions
    that commit only when the transaction function returns.
    """
    db = FakeFirestore()
    with patch('firebase_admin.firestore.client', return_value=db), \
            patch('firebase_admin.firestore.transactional', fake_transactional):
        yield db
