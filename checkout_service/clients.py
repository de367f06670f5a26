"""
This module provides communication clients for the external systems the checkout depends on:
- Payment Gateway (REST API): card charges, PIX and boleto generation
- Shipping Provider (REST API): Correios quotes and package tracking
Each client implements an abstract interface, so the workflow can be handed a mock,
an HTTP client, or a test double without knowing which one it got.
"""

import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

import httpx
from pydantic import ValidationError

from .exceptions import PaymentFailed, PaymentTimeout, ShippingUnavailable
from .logging_config import get_logger
from .models import (
    Address,
    BoletoPaymentResult,
    Dimensions,
    Order,
    PaymentResult,
    PaymentSelection,
    PixPaymentResult,
    ShippingOption,
    TrackingInfo,
)

log = get_logger(__name__)


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


# --- Interfaces ---

class PaymentGateway(ABC):
    """Capability to charge an order and to generate PIX / boleto artifacts."""

    @abstractmethod
    def process_payment(self, order: Order, selection: PaymentSelection) -> PaymentResult:
        ...

    @abstractmethod
    def create_pix_payment(self, order: Order) -> PixPaymentResult:
        ...

    @abstractmethod
    def create_boleto_payment(self, order: Order) -> BoletoPaymentResult:
        ...


class ShippingProvider(ABC):
    """Capability to quote shipping options and to track packages."""

    @abstractmethod
    def calculate_shipping(self, origin: Address, destination: Address, weight: float,
                           dimensions: Dimensions) -> List[ShippingOption]:
        ...

    @abstractmethod
    def track_package(self, tracking_code: str) -> TrackingInfo:
        ...

    def digital_options(self) -> List[ShippingOption]:
        return [
            ShippingOption(
                id="digital",
                name="Download Digital",
                description="Acesso imediato aos e-books",
                cost=Decimal("0.00"),
                estimated_days=0,
                features=["Acesso imediato", "Download ilimitado", "Sem custo de envio"],
            )
        ]

    def pickup_options(self) -> List[ShippingOption]:
        return [
            ShippingOption(
                id="pickup",
                name="Retirada no Local",
                description="Retire seu pedido em nossa loja",
                cost=Decimal("0.00"),
                estimated_days=0,
                features=["Sem custo", "Retirada imediata", "Horário comercial"],
            )
        ]


# --- Payment Client (REST) ---
class PaymentClient(PaymentGateway):
    """
    Client for the Payment Service (REST API).
    Handles charges, PIX / boleto generation and error responses.
    """
    def __init__(self, base_url: str = "http://localhost:8001", read_timeout: float = 8.0,
                 client: Optional[httpx.Client] = None):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            base_url (str): Payment service base URL.
            read_timeout (float): Seconds to wait for a response before giving up.
            client (httpx.Client | None): Pre-built client (e.g., a FastAPI TestClient); overrides the other arguments.
        """
        if client is None:
            timeout_config = httpx.Timeout(5.0, read=read_timeout)
            client = httpx.Client(base_url=base_url, timeout=timeout_config)
        self.client = client

    def close(self):
        """Closes the HTTP client session."""
        self.client.close()

    def _post(self, path: str, order_id: str, payload: dict) -> httpx.Response:
        # A fresh key per call: retries are the caller's decision.
        headers = {"Idempotency-Key": str(uuid.uuid4())}
        try:
            return self.client.post(path, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            log.error(f"[Order: {order_id}] Payment Service Timeout ({type(e).__name__}) on {path}. Status unknown.")
            raise PaymentTimeout(order_id) from e
        except httpx.TransportError as e:
            log.error(f"[Order: {order_id}] Payment Service unreachable ({type(e).__name__}) on {path}: {e}")
            raise PaymentFailed(f"Payment service unavailable: {e}") from e

    def process_payment(self, order: Order, selection: PaymentSelection) -> PaymentResult:
        """
        Charges an order via the Payment Service REST API.

        Returns:
            PaymentResult: success/approved, or success=False/rejected when the service declines.
        Raises:
            PaymentTimeout: If the service does not answer in time (connect, read, write or pool timeout).
            PaymentFailed: If the service cannot be reached at all.
            httpx.HTTPStatusError: On unexpected server errors.
        """
        payload = {
            "amount": to_cents(order.total),
            "currency": "BRL",
            "method": selection.method,
            "installments": selection.installments,
            "payerEmail": order.customer.email,
            "referenceId": order.id,
        }
        response = self._post("/v2/charges", order.id, payload)
        if response.status_code == 402:
            detail = response.json().get("detail", {})
            message = detail.get("message") if isinstance(detail, dict) else str(detail)
            log.warning(f"[Order: {order.id}] Payment declined: {message}")
            return PaymentResult(success=False, status="rejected", message=message)
        response.raise_for_status()
        data = response.json()
        return PaymentResult(
            success=True,
            status="approved",
            transaction_id=data.get("transactionId"),
            message=data.get("message"),
        )

    def create_pix_payment(self, order: Order) -> PixPaymentResult:
        response = self._post("/v2/pix", order.id, {"amount": to_cents(order.total), "referenceId": order.id})
        if response.is_error:
            log.error(f"[Order: {order.id}] PIX generation failed (HTTP {response.status_code}).")
            return PixPaymentResult(success=False, message="Erro ao gerar PIX")
        try:
            data = response.json()
            return PixPaymentResult(
                success=True,
                qr_code=data["qrCode"],
                qr_code_image=data["qrCodeImage"],
                pix_key=data["pixKey"],
                expires_at=data["expiresAt"],
                message=data.get("message"),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            log.error(f"[Order: {order.id}] PIX generation returned an unusable reply: {e!r}")
            return PixPaymentResult(success=False, message="Erro ao gerar PIX")

    def create_boleto_payment(self, order: Order) -> BoletoPaymentResult:
        response = self._post("/v2/boletos", order.id, {"amount": to_cents(order.total), "referenceId": order.id})
        if response.is_error:
            log.error(f"[Order: {order.id}] Boleto generation failed (HTTP {response.status_code}).")
            return BoletoPaymentResult(success=False, message="Erro ao gerar boleto")
        try:
            data = response.json()
            return BoletoPaymentResult(
                success=True,
                boleto_url=data["boletoUrl"],
                boleto_code=data["boletoCode"],
                expires_at=data["expiresAt"],
                message=data.get("message"),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            log.error(f"[Order: {order.id}] Boleto generation returned an unusable reply: {e!r}")
            return BoletoPaymentResult(success=False, message="Erro ao gerar boleto")


# --- Shipping Client (REST) ---
class ShippingClient(ShippingProvider):
    """
    Client for the Shipping Service (Correios REST API).
    """
    def __init__(self, base_url: str = "http://localhost:8002", client: Optional[httpx.Client] = None):
        if client is None:
            client = httpx.Client(base_url=base_url, timeout=httpx.Timeout(5.0))
        self.client = client

    def close(self):
        self.client.close()

    def calculate_shipping(self, origin, destination, weight, dimensions):
        """
        Requests Correios shipping options between two addresses.

        Raises:
            ShippingUnavailable: If the service cannot be reached or answers with an error.
        """
        payload = {
            "originCep": origin.cep,
            "destinationCep": destination.cep,
            "weight": weight,
            "dimensions": dimensions.model_dump(),
        }
        try:
            response = self.client.post("/v1/quotes", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            log.error(f"[Shipping] Quote {origin.cep} -> {destination.cep} failed: {e}")
            raise ShippingUnavailable(str(e)) from e
        return [
            ShippingOption(
                id=option["id"],
                name=option["name"],
                description=option["description"],
                cost=option["cost"],
                estimated_days=option["estimatedDays"],
                features=option.get("features", []),
            )
            for option in response.json()["options"]
        ]

    def track_package(self, tracking_code):
        try:
            response = self.client.get(f"/v1/tracking/{tracking_code}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            log.error(f"[Shipping] Tracking {tracking_code} failed: {e}")
            raise ShippingUnavailable(str(e)) from e
        return TrackingInfo.model_validate(response.json())
