"""
Pytest fixtures for Stockledger tests.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from stockledger import ledger, Requester
from stockledger.adapters import reset_product_catalog
from stockledger.models import Reservation, StockRecord


@pytest.fixture(autouse=True)
def _fresh_catalog():
    """Product catalog is cached per process; reset around each test."""
    reset_product_catalog()
    yield
    reset_product_catalog()


@pytest.fixture
def session():
    """Anonymous checkout session S1."""
    return Requester.session('S1')


@pytest.fixture
def other_session():
    return Requester.session('S2')


@pytest.fixture
def customer():
    """Signed-in user 42."""
    return Requester.user('42')


@pytest.fixture
def stock(db):
    """
    Factory: restock (product_id, size) and return the fresh record.

    Usage:
        record = stock('P1', '10', 5)
    """
    def make(product_id='P1', size='10', quantity=5):
        ledger.restock(product_id, size, quantity, reason='Initial stock')
        return StockRecord.objects.get(product_id=product_id, size=size)
    return make


@pytest.fixture
def p1(stock):
    """P1 size 10 with quantity=5, reserved=0."""
    return stock('P1', '10', 5)


@pytest.fixture
def expire():
    """Move reservations' deadline into the past, as if time had passed."""
    def backdate(*reservation_ids, minutes=1):
        Reservation.objects.filter(pk__in=reservation_ids).update(
            expires_at=timezone.now() - timedelta(minutes=minutes)
        )
    return backdate
