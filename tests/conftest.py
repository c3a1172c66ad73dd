"""Shared fixtures: ERP session, fake ERP tables and a small reconciled data set."""

from __future__ import annotations

from typing import Any

import pytest

from pos_profit.config import ErpSession
from pos_profit.sales.transform import ReconciledSale
from tests.factories import FakeErp, make_sale


@pytest.fixture
def session() -> ErpSession:
    return ErpSession(
        url="https://erp.example.com",
        db="prod",
        uid=2,
        api_key="secret",
        company_id=1,
        company_name="Lemon SAC",
    )


@pytest.fixture
def erp_tables() -> dict[str, list[dict[str, Any]]]:
    """One order at FeetCare, one at Surco; product 12 needs the template cost."""
    return {
        "pos.order": [
            {
                "id": 100,
                "date_order": "2024-03-15 10:00:00",
                "config_id": [1, "FeetCare Recepcion"],
                "lines": [1000, 1001],
                "amount_total": 141.6,
                "user_id": [7, "Ana"],
            },
            {
                "id": 101,
                "date_order": "2024-03-16 02:30:00",
                "config_id": [2, "Caja Surco"],
                "lines": [1002],
                "amount_total": 59.0,
                "user_id": 8,
            },
        ],
        "pos.order.line": [
            {
                "id": 1000,
                "product_id": [11, "Plantilla Ortopedica"],
                "qty": 2,
                "price_subtotal": 100.0,
                "price_subtotal_incl": 118.0,
                "order_id": [100, "Order/100"],
            },
            {
                "id": 1001,
                "product_id": [12, "Crema Podal"],
                "qty": 1,
                "price_subtotal": 20.0,
                "price_subtotal_incl": 23.6,
                "order_id": [100, "Order/100"],
            },
            {
                "id": 1002,
                "product_id": [12, "Crema Podal"],
                "qty": 2,
                "price_subtotal": 50.0,
                "price_subtotal_incl": 59.0,
                "order_id": [101, "Order/101"],
            },
        ],
        "product.product": [
            {"id": 11, "standard_price": 10.0, "categ_id": [3, "Ortopedia"], "product_tmpl_id": [21, "Plantilla"]},
            {"id": 12, "standard_price": 0.0, "categ_id": [4, "Cremas"], "product_tmpl_id": [22, "Crema"]},
        ],
        "product.template": [
            {"id": 21, "standard_price": 9.0},
            {"id": 22, "standard_price": 12.5},
        ],
    }


@pytest.fixture
def fake_erp(erp_tables: dict[str, list[dict[str, Any]]]) -> FakeErp:
    return FakeErp(erp_tables)


@pytest.fixture
def three_sales() -> list[ReconciledSale]:
    return [
        make_sale("FeetCare Recepcion", 100.0, 118.0, 20.0, "2024-03-15 09:00:00", "Plantilla"),
        make_sale("Caja Surco", 50.0, 59.0, 25.0, "2024-03-16 11:00:00", "Crema"),
        make_sale("Kiosko Centro", 30.0, 35.4, 0.0, "2024-03-17 18:00:00", "Crema"),
    ]
