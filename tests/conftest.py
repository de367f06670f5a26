"""Shared fixtures.

Every test runs against an in-memory storage and the mock payment / shipping
services mounted in-process through FastAPI's TestClient, with their
artificial delays switched off.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from checkout_service.clients import PaymentClient, ShippingClient
from checkout_service.container import Container
from checkout_service.models import (
    Address,
    Customer,
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentSelection,
    ShippingSelection,
)
from checkout_service.storage import InMemoryStorage
from mock_services import mock_payment_service, mock_shipping_service

BASE_TIME = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def no_mock_delays(monkeypatch):
    monkeypatch.setattr(mock_payment_service, "PROCESSING_DELAY", 0)
    monkeypatch.setattr(mock_shipping_service, "PROCESSING_DELAY", 0)


@pytest.fixture()
def storage():
    return InMemoryStorage()


@pytest.fixture()
def payment_gateway():
    return PaymentClient(client=TestClient(mock_payment_service.app))


@pytest.fixture()
def shipping_provider():
    return ShippingClient(client=TestClient(mock_shipping_service.app))


@pytest.fixture()
def container(storage, payment_gateway, shipping_provider):
    return Container(storage, payment_gateway, shipping_provider)


# ---------------------------------------------------------------------------
# Checkout data
# ---------------------------------------------------------------------------


@pytest.fixture()
def address():
    return Address(
        cep="20040-002",
        street="Rua da Assembleia",
        number="10",
        complement="Sala 501",
        neighborhood="Centro",
        city="Rio de Janeiro",
        state="RJ",
    )


@pytest.fixture()
def customer(address):
    return Customer(
        name="Maria Silva",
        email="maria@example.com",
        phone="(21) 99999-0000",
        cpf="598.601.842-75",
        address=address,
    )


@pytest.fixture()
def correios_shipping(address):
    return ShippingSelection(method="correios", cost=Decimal("15.90"), estimated_days=5, address=address)


@pytest.fixture()
def pickup_shipping():
    return ShippingSelection(method="pickup", cost=Decimal("0"), pickup_location="Loja Centro")


@pytest.fixture()
def card_payment():
    return PaymentSelection(method="credit_card", installments=3)


@pytest.fixture()
def order_factory(customer, correios_shipping, card_payment):
    """Builds orders directly, bypassing checkout, for store and sync tests."""

    def make(order_id="order_1", status=OrderStatus.PAID, created_at=BASE_TIME, updated_at=None, **overrides):
        items = overrides.pop("items", [
            OrderLineItem(product_id="1", product_title="Código Limpo", quantity=2,
                          price=Decimal("50.00"), type="physical"),
        ])
        fields = dict(
            id=order_id,
            customer=customer,
            items=items,
            payment=card_payment,
            shipping=correios_shipping,
            total=sum(item.price * item.quantity for item in items) + correios_shipping.cost,
            status=status,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
        fields.update(overrides)
        return Order(**fields)

    return make


@pytest.fixture()
def later():
    """Returns BASE_TIME shifted by the given number of minutes."""
    return lambda minutes: BASE_TIME + timedelta(minutes=minutes)
