"""
mock_payment_service.py — Mock Implementation of the Payment Gateway (REST API)

This module provides a simulated payment gateway for developing and testing the checkout.
It exposes a simple FastAPI application that mimics real-world payment processing behavior,
including an artificial processing delay.

Simulation Scenarios:
    • Credit / debit card charges approved
    • PIX and boleto refused on the card charge endpoint ("Método de pagamento não suportado")
    • Declined charge (HTTP 402) when the payer e-mail contains "decline"
    • Timeout simulation when the payer e-mail contains "timeout" (outlasts the client read timeout)
    • PIX generation with a QR code image and a 30-minute expiry
    • Boleto generation with a 3-day expiry

Endpoints:
    POST /v2/charges — Card charge for an order.
    POST /v2/pix     — PIX code generation for an order.
    POST /v2/boletos — Boleto generation for an order.

Port:
    Default: 8001 (HTTP)
"""

import base64
import io
import logging
import os
import random
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import qrcode
import qrcode.image.svg
from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

app = FastAPI(title="Mock Payment Service")
log = logging.getLogger(__name__)

PROCESSING_DELAY = float(os.environ.get("MOCK_PAYMENT_DELAY", "1.0"))
TIMEOUT_DELAY = 10.0
MERCHANT_NAME = "Compia PWeb"
PIX_VALIDITY = timedelta(minutes=30)
BOLETO_VALIDITY = timedelta(days=3)
BOLETO_CODE = "23791.12345.67890.123456.789012.345678.12345678901234"


class ChargeRequest(BaseModel):
    """
    Represents a card charge request payload.

    Attributes:
        amount (int): Total payment amount in cents.
        currency (str): ISO 4217 currency code (e.g., 'BRL').
        method (str): Payment method chosen at checkout.
        installments (int | None): Credit card installments.
        payerEmail (str): E-mail of the paying customer.
        referenceId (str): Order id this charge belongs to.
    """
    amount: int = Field(..., ge=0)
    currency: str = "BRL"
    method: str
    installments: Optional[int] = None
    payerEmail: str
    referenceId: str


class ArtifactRequest(BaseModel):
    amount: int = Field(..., ge=0)
    referenceId: str


def _simulate_processing():
    if PROCESSING_DELAY > 0:
        time.sleep(PROCESSING_DELAY)


def _expiry(validity: timedelta) -> str:
    return (datetime.now(timezone.utc) + validity).isoformat()


def generate_pix_key() -> str:
    """Random CPF-formatted PIX key for demonstration."""
    digits = f"{random.randrange(10 ** 11):011d}"
    return f"{digits[0:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:11]}"


def generate_pix_code(amount_cents: int, reference_id: str) -> str:
    """Simplified PIX copy-and-paste code; not a valid EMV payload."""
    amount = f"{amount_cents / 100:.2f}"
    return (
        "00020126360014BR.GOV.BCB.PIX0114+5511999999999520400005303986540.00"
        f"{amount}5802BR5913{MERCHANT_NAME}6008BRASILIA62070503***6304{reference_id}"
    )


def qr_code_data_url(payload: str) -> str:
    """Renders `payload` as an SVG QR code embedded in a data URL."""
    image = qrcode.make(payload, image_factory=qrcode.image.svg.SvgPathImage, border=2)
    buffer = io.BytesIO()
    image.save(buffer)
    return "data:image/svg+xml;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


@app.post("/v2/charges")
def create_charge(
        request: ChargeRequest,
        idempotency_key: str = Header(..., alias="Idempotency-Key")
):
    """
        Processes a card charge request.

        Args:
            request (ChargeRequest): The charge details.
            idempotency_key (str): Unique identifier from the client to ensure request idempotency.

        Returns:
            dict: Payment transaction result on success, including:
                - transactionId (str): Unique transaction identifier.
                - status (str): Always "approved" for successful payments.
                - message (str): Human-readable result.
                - createdAt (str): UTC timestamp of the transaction.

        Raises:
            HTTPException(402): If the payment is declined or the method is not a card.
    """
    log.info(f"[PS] Charge request for {request.referenceId} (Idempotency: {idempotency_key})")

    if "timeout" in request.payerEmail:
        log.info(f"[PS] Simulating timeout for {request.referenceId}...")
        time.sleep(TIMEOUT_DELAY)
        log.error(f"[PS] Timeout request {request.referenceId} finished (too late).")
        return

    _simulate_processing()

    if "decline" in request.payerEmail:
        log.warning(f"[PS] Charge for {request.referenceId} declined.")
        raise HTTPException(
            status_code=402,
            detail={"errorCode": "payment_declined", "message": "Cartão recusado."}
        )

    if request.method not in ("credit_card", "debit_card"):
        log.warning(f"[PS] Method {request.method} not supported for charges ({request.referenceId}).")
        raise HTTPException(
            status_code=402,
            detail={"errorCode": "unsupported_method", "message": "Método de pagamento não suportado"}
        )

    log.info(f"[PS] Charge for {request.referenceId} approved.")
    return {
        "transactionId": f"txn_{uuid.uuid4().hex}",
        "status": "approved",
        "message": "Pagamento aprovado com sucesso!",
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/v2/pix")
def create_pix(
        request: ArtifactRequest,
        idempotency_key: str = Header(..., alias="Idempotency-Key")
):
    """Generates a PIX key, copy-and-paste code and QR code image for an order."""
    log.info(f"[PS] PIX request for {request.referenceId} (Idempotency: {idempotency_key})")
    _simulate_processing()

    pix_code = generate_pix_code(request.amount, request.referenceId)
    return {
        "qrCode": pix_code,
        "qrCodeImage": qr_code_data_url(pix_code),
        "pixKey": generate_pix_key(),
        "expiresAt": _expiry(PIX_VALIDITY),
        "message": "PIX gerado com sucesso!",
    }


@app.post("/v2/boletos")
def create_boleto(
        request: ArtifactRequest,
        idempotency_key: str = Header(..., alias="Idempotency-Key")
):
    """Generates a boleto for an order."""
    log.info(f"[PS] Boleto request for {request.referenceId} (Idempotency: {idempotency_key})")
    _simulate_processing()

    return {
        "boletoUrl": f"https://exemplo.com/boleto/{request.referenceId}",
        "boletoCode": BOLETO_CODE,
        "expiresAt": _expiry(BOLETO_VALIDITY),
        "message": "Boleto gerado com sucesso!",
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8001)
