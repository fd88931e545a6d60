"""
Pytest fixtures for the sales document engine test suite.

Provides:
- Structured logging configuration and log capture
- Deterministic clock
- Line and reference-data factories shared across layers
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from sales_kernel.domain.clock import DeterministicClock
from sales_kernel.domain.document import DocumentLine, ProductRef, new_line_id
from sales_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture sales_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            evaluate(line, limits)
            logs = captured_logs()
            assert any(r["message"] == "discount_limit_exceeded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("sales_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc))


# =============================================================================
# Factories
# =============================================================================

_DEFAULT = object()


def make_product(
    code: str = "STK-001",
    name: str = "Steel bracket",
    product_id: int | None = 101,
    group_code: str | None = "GRP-A",
) -> ProductRef:
    return ProductRef(
        product_code=code,
        product_name=name,
        product_id=product_id,
        group_code=group_code,
    )


def make_line(
    local_id: str | None = None,
    quantity="10",
    unit_price="100",
    vat_rate="18",
    discounts=("0", "0", "0"),
    product: ProductRef | None | object = _DEFAULT,
    **kwargs,
) -> DocumentLine:
    """Line with raw inputs only; totals are left for the engine."""
    if product is _DEFAULT:
        product = make_product()
    return DocumentLine(
        local_id=local_id or new_line_id(),
        product=product,
        quantity=Decimal(str(quantity)),
        unit_price=Decimal(str(unit_price)),
        vat_rate=Decimal(str(vat_rate)),
        discount_rate1=Decimal(str(discounts[0])),
        discount_rate2=Decimal(str(discounts[1])),
        discount_rate3=Decimal(str(discounts[2])),
        **kwargs,
    )


@pytest.fixture
def line_factory():
    return make_line
