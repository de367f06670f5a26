"""
mock_shipping_service.py — Mock Implementation of the Correios Shipping Service (REST API)

This module simulates the carrier used for physical books: it quotes shipping
options between two postal codes and returns tracking events for a package.

Purpose:
    • Provide realistic shipping options (PAC, SEDEX, SEDEX 10) for the checkout
    • Simulate package tracking for the purchase history
    • Mimic carrier latency with an artificial delay

Endpoints:
    POST /v1/quotes               — Shipping options for origin/destination CEP, weight and dimensions.
    GET  /v1/tracking/{code}      — Tracking events of a package.

Port:
    Default: 8002 (HTTP)
"""

import logging
import os
import re
import time
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

app = FastAPI(title="Mock Shipping Service")
log = logging.getLogger(__name__)

PROCESSING_DELAY = float(os.environ.get("MOCK_SHIPPING_DELAY", "0.5"))
MINIMUM_COST = 15.90


class QuoteDimensions(BaseModel):
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class QuoteRequest(BaseModel):
    """
    Represents a shipping quote request.

    Attributes:
        originCep (str): Postal code the package leaves from.
        destinationCep (str): Postal code of the customer.
        weight (float): Package weight in kg.
        dimensions (QuoteDimensions): Package dimensions in cm.
    """
    originCep: str
    destinationCep: str
    weight: float = Field(..., gt=0)
    dimensions: QuoteDimensions


def _simulate_processing():
    if PROCESSING_DELAY > 0:
        time.sleep(PROCESSING_DELAY)


def _cep_prefix(cep: str) -> int:
    digits = re.sub(r"\D", "", cep)
    if len(digits) != 8:
        raise HTTPException(status_code=422, detail=f"Invalid CEP: {cep}")
    return int(digits[:5])


def estimate_distance(origin_cep: str, destination_cep: str) -> float:
    """Pseudo-distance in km derived from the CEP prefixes (100-1100 km)."""
    return 100.0 + abs(_cep_prefix(origin_cep) - _cep_prefix(destination_cep)) % 1000


def base_cost(weight: float, distance: float) -> float:
    # R$ 0.50 per kg plus R$ 0.10 per km, never below the minimum.
    return max(MINIMUM_COST, weight * 0.5 + distance * 0.1)


@app.post("/v1/quotes")
def quote(request: QuoteRequest):
    """
    Quotes the three Correios services for a package.

    Returns:
        dict: {"options": [...]} with id, name, description, cost, estimatedDays and features.
    """
    log.info(f"[SHIP] Quote {request.originCep} -> {request.destinationCep} ({request.weight} kg)")
    distance = estimate_distance(request.originCep, request.destinationCep)
    cost = base_cost(request.weight, distance)
    _simulate_processing()

    return {
        "options": [
            {
                "id": "pac",
                "name": "PAC",
                "description": "Envio econômico",
                "cost": round(cost * 0.8, 2),
                "estimatedDays": max(5, -(-int(distance) // 100)),
                "features": ["Rastreamento", "Seguro básico"],
            },
            {
                "id": "sedex",
                "name": "SEDEX",
                "description": "Envio expresso",
                "cost": round(cost * 1.5, 2),
                "estimatedDays": max(2, -(-int(distance) // 200)),
                "features": ["Rastreamento", "Seguro completo", "Entrega expressa"],
            },
            {
                "id": "sedex10",
                "name": "SEDEX 10",
                "description": "Entrega até 10h",
                "cost": round(cost * 2.0, 2),
                "estimatedDays": 1,
                "features": ["Rastreamento", "Seguro completo", "Entrega até 10h"],
            },
        ]
    }


@app.get("/v1/tracking/{tracking_code}")
def track(tracking_code: str):
    """Returns three simulated tracking events (posted, in transit, out for delivery)."""
    if not tracking_code.startswith("BR"):
        raise HTTPException(status_code=404, detail=f"Unknown tracking code: {tracking_code}")
    log.info(f"[SHIP] Tracking request for {tracking_code}")
    _simulate_processing()

    today = datetime.now(timezone.utc).date()
    day = timedelta(days=1)
    return {
        "status": "Em trânsito",
        "events": [
            {
                "date": today.isoformat(),
                "time": "08:00",
                "location": "São Paulo/SP",
                "status": "Objeto postado",
                "description": "Objeto postado após o horário limite da unidade",
            },
            {
                "date": (today + day).isoformat(),
                "time": "14:30",
                "location": "São Paulo/SP",
                "status": "Em trânsito",
                "description": "Objeto em trânsito - por favor aguarde",
            },
            {
                "date": (today + 2 * day).isoformat(),
                "time": "09:15",
                "location": "Rio de Janeiro/RJ",
                "status": "Saiu para entrega",
                "description": "Objeto saiu para entrega ao destinatário",
            },
        ],
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8002)
