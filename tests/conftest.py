"""
Pytest configuration and shared fixtures for the cashcast tests.
"""

import os
from datetime import date
from unittest.mock import patch

import pytest

from cashcast import create_app
from cashcast.config import reset_global_settings

NOW = date(2026, 10, 19)


@pytest.fixture(autouse=True)
def app_environment():
    """Provide a valid SECRET_KEY and fresh global settings for every test."""
    reset_global_settings()
    with patch.dict(
        os.environ, {"SECRET_KEY": "test-secret-key-123", "APP_ENV": "testing"}
    ):
        yield
    reset_global_settings()


@pytest.fixture
def now():
    """Fixed reference date (a Monday)."""
    return NOW


@pytest.fixture
def client():
    """Flask test client."""
    app = create_app("testing")
    return app.test_client()


@pytest.fixture
def make_income():
    """Factory for raw income records."""

    def _make(id="salary", amount=1000.0, when="2026-10-25", frequency="monthly", **extra):
        record = {
            "id": id,
            "name": extra.pop("name", "Salary"),
            "amount": amount,
            "date": when,
            "frequency": frequency,
        }
        record.update(extra)
        return record

    return _make


@pytest.fixture
def make_bill():
    """Factory for raw bill records."""

    def _make(id="rent", amount=800.0, when="2026-11-01", frequency=None, **extra):
        record = {
            "id": id,
            "name": extra.pop("name", "Rent"),
            "amount": amount,
            "dueDate": when,
            "frequency": frequency,
            "isPaid": extra.pop("is_paid", False),
        }
        record.update(extra)
        return record

    return _make


@pytest.fixture
def make_expense():
    """Factory for raw expense records."""

    def _make(id="groceries", amount=120.0, when="2026-10-22", frequency=None, **extra):
        record = {
            "id": id,
            "name": extra.pop("name", "Groceries"),
            "amount": amount,
            "date": when,
            "frequency": frequency,
        }
        record.update(extra)
        return record

    return _make
