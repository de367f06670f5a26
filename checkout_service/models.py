"""
models.py — Data Models for Checkout and Order Processing

This module defines the data structures used across the checkout flow, the
order stores and the collaborator clients. It uses Pydantic models to ensure
type safety and automatic validation of incoming and persisted data.

Models:
    - Address, Customer: who buys and where it ships.
    - PaymentSelection, ShippingSelection: choices made during checkout.
    - OrderLineItem, Order: the finalized purchase record.
    - CheckoutSession, CheckoutStep: working state of the four-step wizard.
    - Product, CartLine: catalog and cart contents.
    - PaymentResult, PixPaymentResult, BoletoPaymentResult: payment gateway answers.
    - ShippingOption, TrackingInfo: shipping provider answers.
    - DigitalDownload, OrderConfirmation: what the caller gets back after completion.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantizes a currency amount to cents (half up)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


PaymentMethod = Literal["credit_card", "debit_card", "pix", "boleto"]
ShippingMethod = Literal["correios", "pickup", "digital"]
ItemType = Literal["physical", "ebook"]
ProductType = Literal["fisico", "ebook"]


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# --- Customer data ---

class Address(BaseModel):
    """
    Delivery or billing address.

    Attributes:
        cep (str): Brazilian postal code.
        street (str): Street name (logradouro).
        number (str): House or building number.
        complement (str | None): Apartment, block, etc.
        neighborhood (str): Bairro.
        city (str): City name.
        state (str): State abbreviation (e.g., 'SP').
        country (str): Country name.
    """
    model_config = ConfigDict(frozen=True)

    cep: str
    street: str
    number: str
    complement: Optional[str] = None
    neighborhood: str
    city: str
    state: str
    country: str = "Brasil"


class Customer(BaseModel):
    """Snapshot of the buyer. Each order embeds its own copy."""
    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: str
    cpf: str
    address: Address


class PaymentSelection(BaseModel):
    """
    Payment method chosen at checkout.

    Card numbers are never part of this model. The installment count is only
    kept for credit card payments.
    """
    model_config = ConfigDict(frozen=True)

    method: PaymentMethod
    installments: Optional[int] = Field(default=None, ge=1, le=12)
    pix_key_type: Optional[Literal["email", "phone", "cpf", "random"]] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_installments(cls, data):
        if isinstance(data, dict) and data.get("method") != "credit_card":
            data = {**data, "installments": None}
        return data


class ShippingSelection(BaseModel):
    """
    Shipping method chosen at checkout.

    A delivery address is required for 'correios'; 'pickup' and 'digital'
    do not ship anything to the customer.
    """
    model_config = ConfigDict(frozen=True)

    method: ShippingMethod
    cost: Decimal = Field(default=Decimal("0.00"), ge=0)
    estimated_days: int = Field(default=0, ge=0)
    pickup_location: Optional[str] = None
    address: Optional[Address] = None

    @field_validator("cost")
    @classmethod
    def _quantize_cost(cls, value):
        return to_money(value)

    @model_validator(mode="after")
    def _require_address_for_delivery(self):
        if self.method == "correios" and self.address is None:
            raise ValueError("a delivery address is required for 'correios' shipping")
        return self


# --- Payment artifacts ---

class PixPayment(BaseModel):
    qr_code: str
    qr_code_image: str
    pix_key: str
    expires_at: datetime


class BoletoPayment(BaseModel):
    boleto_url: str
    boleto_code: str
    expires_at: datetime


# --- Orders ---

class OrderLineItem(BaseModel):
    """
    Snapshot of a cart line at order-creation time.

    The title and unit price are copied from the catalog when the order is
    created; later catalog changes never affect an existing order.
    """
    model_config = ConfigDict(frozen=True)

    product_id: str
    product_title: str
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)
    type: ItemType

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value):
        return to_money(value)

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.price * self.quantity)


class Order(BaseModel):
    """
    A finalized purchase record.

    Only `status` and `updated_at` change after creation; every other field is
    fixed when the completion workflow builds the order.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    customer: Customer
    items: List[OrderLineItem] = Field(..., min_length=1)
    payment: PaymentSelection
    shipping: ShippingSelection
    total: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    pix_payment: Optional[PixPayment] = None
    boleto_payment: Optional[BoletoPayment] = None

    @field_validator("total")
    @classmethod
    def _quantize_total(cls, value):
        return to_money(value)


class OrderFilters(BaseModel):
    """Optional criteria for listing orders from a store."""
    status: Optional[OrderStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search_term: Optional[str] = None
    customer_email: Optional[str] = None


# --- Catalog and cart ---

class Product(BaseModel):
    id: str
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    type: ProductType
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    cover_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value):
        return to_money(value)


class ProductInput(BaseModel):
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    type: ProductType
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    cover_url: Optional[str] = None


class ProductUpdate(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    type: Optional[ProductType] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    cover_url: Optional[str] = None


class CartLine(BaseModel):
    product: Product
    quantity: int = Field(..., gt=0)

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.product.price * self.quantity)


# --- Checkout session ---

class CheckoutSession(BaseModel):
    """Working state of the checkout wizard, persisted across restarts."""
    current_step: int = Field(default=0, ge=0, le=3)
    customer: Optional[Customer] = None
    payment: Optional[PaymentSelection] = None
    shipping: Optional[ShippingSelection] = None
    order: Optional[Order] = None


class CheckoutStep(BaseModel):
    id: str
    title: str
    description: str
    completed: bool
    current: bool


# --- Gateway answers ---

class PaymentResult(BaseModel):
    success: bool
    status: Literal["pending", "approved", "rejected"]
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    redirect_url: Optional[str] = None


class PixPaymentResult(BaseModel):
    success: bool
    qr_code: Optional[str] = None
    qr_code_image: Optional[str] = None
    pix_key: Optional[str] = None
    expires_at: Optional[datetime] = None
    message: Optional[str] = None


class BoletoPaymentResult(BaseModel):
    success: bool
    boleto_url: Optional[str] = None
    boleto_code: Optional[str] = None
    expires_at: Optional[datetime] = None
    message: Optional[str] = None


class ShippingOption(BaseModel):
    id: str
    name: str
    description: str
    cost: Decimal
    estimated_days: int
    features: List[str] = Field(default_factory=list)


class Dimensions(BaseModel):
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class TrackingEvent(BaseModel):
    date: str
    time: str
    location: str
    status: str
    description: str


class TrackingInfo(BaseModel):
    status: str
    events: List[TrackingEvent] = Field(default_factory=list)


# --- Completion result ---

class DigitalDownload(BaseModel):
    id: str
    order_id: str
    product_id: str
    product_title: str
    download_url: str
    expires_at: datetime
    download_count: int = 0
    max_downloads: int = 5


class OrderConfirmation(BaseModel):
    """
    Everything the confirmation view needs after a successful checkout.

    Returned to the caller of the completion workflow; the caller decides
    what to do with it (close the cart drawer, render the PIX code, etc.).
    """
    order: Order
    pix_payment: Optional[PixPayment] = None
    boleto_payment: Optional[BoletoPayment] = None
    digital_downloads: List[DigitalDownload] = Field(default_factory=list)
    tracking_code: Optional[str] = None


class SyncReport(BaseModel):
    copied_to_history: int = 0
    copied_to_management: int = 0
    updated: int = 0


class BulkUpdateResult(BaseModel):
    updated: List[str] = Field(default_factory=list)
    rejected: Dict[str, str] = Field(default_factory=dict)
