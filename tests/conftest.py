"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


def make_order(**overrides):
    order = {
        "id": 1,
        "orderNumber": "ORD-0001",
        "status": "paid",
        "subtotal": "100000",
        "discount": "0",
        "tax": "0",
        "total": "100000",
        "priceIncludesTax": False,
        "paymentMethod": "cash",
        "customerId": None,
        "customerName": None,
        "employeeId": 7,
        "employeeName": "Lan",
        "tableId": None,
        "orderedAt": "2026-10-01T09:30:00",
        "createdAt": "2026-10-01T09:25:00",
    }
    order.update(overrides)
    return order


@pytest.fixture
def order_factory():
    """Build order records with sensible defaults."""
    return make_order


@pytest.fixture
def exclusive_order():
    """Scenario A: tax-exclusive order with discount and tax."""
    return make_order(subtotal=100000, discount=10000, tax=8000, total=98000, priceIncludesTax=False)


@pytest.fixture
def inclusive_order():
    """Scenario B: tax-inclusive order."""
    return make_order(id=2, subtotal=90000, discount=10000, tax=8000, total=108000, priceIncludesTax=True)


@pytest.fixture
def sample_snapshot():
    """A small day of trading across channels, staff and customers."""
    orders = [
        make_order(id=1, orderNumber="ORD-1", subtotal=50000, customerId=10, customerName="An",
                   tableId=3, orderedAt="2026-10-01T09:00:00"),
        make_order(id=2, orderNumber="ORD-2", subtotal=30000, customerName="Binh",
                   employeeId=8, employeeName="Minh", orderedAt="2026-10-01T12:15:00",
                   paymentMethod='[{"method":"cash","amount":10000},{"method":"card","amount":20000}]'),
        make_order(id=3, orderNumber="ORD-3", subtotal=40000, discount=4000, tax=3600,
                   status="completed", customerId=10, customerName="An",
                   orderedAt="2026-10-02T12:45:00", paymentMethod="momo"),
        make_order(id=4, orderNumber="ORD-4", subtotal=20000, status="cancelled", tableId=5,
                   orderedAt="2026-10-02T18:00:00"),
        make_order(id=5, orderNumber="ORD-5", subtotal=15000, status="pending",
                   orderedAt="2026-10-02T19:00:00"),
    ]
    items = [
        {"orderId": 1, "productId": 100, "productName": "Ca phe sua", "productSku": "CF-01",
         "quantity": 2, "unitPrice": 15000, "categoryName": "Drinks"},
        {"orderId": 1, "productId": 200, "productName": "Banh mi", "productSku": "BM-01",
         "quantity": 1, "unitPrice": 20000, "categoryName": "Food"},
        {"orderId": 2, "productId": 100, "productName": "Ca phe sua", "productSku": "CF-01",
         "quantity": 2, "unitPrice": 15000, "categoryName": "Drinks"},
        {"orderId": 3, "productId": 200, "productName": "Banh mi", "productSku": "BM-01",
         "quantity": 2, "unitPrice": 20000, "categoryName": "Food"},
        {"orderId": 4, "productId": 300, "productName": "Tra dao", "productSku": "TD-01",
         "quantity": 1, "unitPrice": 20000, "categoryName": "Drinks"},
    ]
    return orders, items
