"""Shared fixtures for the recap, store and API tests."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from pos_recap.backend.aggregator import LineItem, PaymentMethod, TransactionRecord
from pos_recap.backend.services import TransactionStore
from pos_recap.config import TestingConfig

JAKARTA = ZoneInfo("Asia/Jakarta")


def local(year, month, day, hour=12, minute=0):
    """Aware datetime in the store's local timezone."""
    return datetime(year, month, day, hour, minute, tzinfo=JAKARTA)


@pytest.fixture
def jakarta():
    return JAKARTA


@pytest.fixture
def at():
    return local


@pytest.fixture
def make_record():
    """Build a TransactionRecord whose totals match its line items unless overridden."""
    counter = {"n": 0}

    def _make(
        timestamp,
        method="cash",
        items=(("Kopi", 10000, 6000, 1),),
        gross_total=None,
        cost_total=None,
        record_id=None,
    ):
        counter["n"] += 1
        line_items = tuple(
            LineItem(product_name=name, unit_price=price, unit_cost=cost, quantity=qty)
            for name, price, cost, qty in items
        )
        return TransactionRecord(
            id=record_id or f"tx-{counter['n']}",
            timestamp=timestamp,
            payment_method=PaymentMethod(method),
            line_items=line_items,
            gross_total=(
                gross_total if gross_total is not None
                else sum(item.revenue for item in line_items)
            ),
            cost_total=(
                cost_total if cost_total is not None
                else sum(item.cost for item in line_items)
            ),
        )

    return _make


@pytest.fixture
def store(tmp_path):
    return TransactionStore(tmp_path / "test.db", tz=JAKARTA)


@pytest.fixture
def app_config(tmp_path):
    class _Config(TestingConfig):
        DB_PATH = tmp_path / "api.db"
        OUTPUT_DIR = tmp_path / "out"
        TIMEZONE = "Asia/Jakarta"
        BUSINESS_DAY_OFFSET_HOURS = 4

    return _Config


@pytest.fixture
def app(app_config):
    from pos_recap.backend.api import create_app

    return create_app(app_config)


@pytest.fixture
def client(app):
    return app.test_client()
