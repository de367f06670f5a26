"""
workflow.py — Core Orchestration Logic for Order Completion

This module contains the workflow that turns a completed checkout session and
the current cart into a persisted order. It coordinates all collaborators
(Payment Gateway, Order Repository, Product Catalog) in the correct sequence.

Workflow Overview:
1. Validate the checkout session and the cart (fail fast, nothing written)
2. Snapshot cart lines and compute the authoritative total
3. Optionally authorize card payments with the Payment Gateway
4. Generate the PIX / boleto artifact (best effort)
5. Persist the order in the customer and admin stores
6. Decrement stock per line and issue e-book download links (best effort)
7. Clear the cart and leave the session on the confirmation step
"""

import time
import uuid
from decimal import Decimal

import httpx

from .checkout import CONFIRMATION_STEP
from .exceptions import (
    EmptyCart,
    IncompleteCheckout,
    PaymentFailed,
    PaymentTimeout,
    StockUpdateFailed,
    StorageUnavailable,
)
from .logging_config import get_logger
from .models import (
    BoletoPayment,
    Order,
    OrderConfirmation,
    OrderLineItem,
    OrderStatus,
    PixPayment,
    to_money,
    utcnow,
)

log = get_logger(__name__)

CARD_METHODS = ("credit_card", "debit_card")


def new_order_id() -> str:
    """Millisecond timestamp plus a random suffix, unique even for orders created in the same millisecond."""
    return f"order_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


class OrderCompletionWorkflow:
    """
    Completes a checkout.

    Every collaborator is passed in explicitly; nothing is looked up from
    module-level state.

    Args:
        checkout (CheckoutStateMachine): Session holding customer, shipping and payment selections.
        cart (Cart): Current cart contents.
        repository (OrderRepository): Writes the order to both order stores.
        catalog (ProductCatalog): Receives the stock decrements.
        payment_gateway (PaymentGateway): Authorizes cards and generates PIX / boleto artifacts.
        downloads (DigitalDownloadStore): Issues download links for e-book lines.
        authorize_payment (bool): If True, card payments are authorized before the order is persisted.
    """

    def __init__(self, checkout, cart, repository, catalog, payment_gateway, downloads, authorize_payment=False):
        self.checkout = checkout
        self.cart = cart
        self.repository = repository
        self.catalog = catalog
        self.payment_gateway = payment_gateway
        self.downloads = downloads
        self.authorize_payment = authorize_payment

    def complete_order(self) -> OrderConfirmation:
        """
        Executes the complete order-completion workflow.

        The order is created directly as 'paid': checkout completion counts as
        payment confirmation for every method, PIX and boleto included. With
        `authorize_payment` enabled, card payments are charged first and a
        declined charge aborts the workflow before anything is written.

        Returns:
            OrderConfirmation: The new order plus PIX / boleto data, digital
            downloads and tracking code where applicable.

        Raises:
            IncompleteCheckout: Customer, payment or shipping selection is missing.
            EmptyCart: The cart has no lines.
            PaymentFailed: The gateway declined a card authorization or could not be reached.
            PaymentTimeout: The gateway did not answer a card authorization in time.
            StorageUnavailable: An order store could not be written. No store keeps a partial record.

        Workflow Steps:
            Steps 1-5 (validation, snapshot, authorization, artifact, persistence)
            are all-or-nothing with respect to the order stores. Steps 6-7 run
            after the order stands; a stock or download-link failure is logged and
            never undoes the order.
        """
        missing = self.checkout.missing_fields()
        if missing:
            log.warning(f"[Checkout] Completion refused, missing: {', '.join(missing)}")
            raise IncompleteCheckout(missing)

        lines = self.cart.lines()
        if not lines:
            log.warning("[Checkout] Completion refused, cart is empty.")
            raise EmptyCart()

        customer = self.checkout.customer
        payment = self.checkout.payment
        shipping = self.checkout.shipping

        order_id = new_order_id()
        log_prefix = f"[Order: {order_id}]"
        log.info(f"{log_prefix} Starting order completion.")

        # --- 1./2. Snapshot and totals ---
        items = [
            OrderLineItem(
                product_id=line.product.id,
                product_title=line.product.title,
                quantity=line.quantity,
                price=line.product.price,
                type="physical" if line.product.type == "fisico" else "ebook",
            )
            for line in lines
        ]
        subtotal = sum((item.subtotal for item in items), Decimal("0"))
        total = to_money(subtotal + shipping.cost)
        log.info(f"{log_prefix} Subtotal {subtotal}, shipping {shipping.cost}, total {total}.")

        now = utcnow()
        order = Order(
            id=order_id,
            customer=customer,
            items=items,
            payment=payment,
            shipping=shipping,
            total=total,
            status=OrderStatus.PAID,
            created_at=now,
            updated_at=now,
        )

        # --- 3. Payment authorization (cards only, opt-in) ---
        if self.authorize_payment and payment.method in CARD_METHODS:
            log.info(f"{log_prefix} Authorizing {payment.method} payment...")
            result = self.payment_gateway.process_payment(order, payment)
            if not result.success:
                log.error(f"{log_prefix} Payment rejected: {result.message}. Nothing persisted.")
                raise PaymentFailed(result.message or "Payment failed")
            log.info(f"{log_prefix} Payment approved. (TxID: {result.transaction_id})")

        # --- 4. Payment artifact (best effort) ---
        order = self._attach_payment_artifact(order)

        # --- 5. Persistence in both stores ---
        self.repository.add_order(order)

        # --- 6. Stock and download links ---
        self._decrement_stock(order, lines)
        downloads = self._issue_downloads(order)

        # --- 7. Working state ---
        self.cart.clear()
        self.checkout.reset_checkout()
        self.checkout.set_order(order)
        self.checkout.set_current_step(CONFIRMATION_STEP)

        log.info(f"{log_prefix} Order completed successfully.")
        return OrderConfirmation(
            order=order,
            pix_payment=order.pix_payment,
            boleto_payment=order.boleto_payment,
            digital_downloads=downloads,
            tracking_code=f"BR{order.id[-13:]}" if shipping.method == "correios" else None,
        )

    def _attach_payment_artifact(self, order: Order) -> Order:
        """Generates PIX / boleto data. Any failure leaves the order without an artifact."""
        method = order.payment.method
        if method not in ("pix", "boleto"):
            return order

        log_prefix = f"[Order: {order.id}]"
        try:
            if method == "pix":
                result = self.payment_gateway.create_pix_payment(order)
                if result.success:
                    return order.model_copy(update={"pix_payment": PixPayment(
                        qr_code=result.qr_code,
                        qr_code_image=result.qr_code_image,
                        pix_key=result.pix_key,
                        expires_at=result.expires_at,
                    )})
            else:
                result = self.payment_gateway.create_boleto_payment(order)
                if result.success:
                    return order.model_copy(update={"boleto_payment": BoletoPayment(
                        boleto_url=result.boleto_url,
                        boleto_code=result.boleto_code,
                        expires_at=result.expires_at,
                    )})
            log.warning(f"{log_prefix} {method} artifact not generated: {result.message}. Continuing without it.")
        except (PaymentTimeout, PaymentFailed, httpx.HTTPError) as e:
            log.warning(f"{log_prefix} {method} artifact generation failed ({e}). Continuing without it.")
        return order

    def _decrement_stock(self, order: Order, lines) -> None:
        log_prefix = f"[Order: {order.id}]"
        for line in lines:
            product_id = line.product.id
            try:
                self.catalog.update_stock(product_id, -line.quantity)
                log.info(f"{log_prefix} Stock updated for product {product_id}: -{line.quantity}")
            except Exception as e:
                failure = StockUpdateFailed(product_id, str(e))
                log.error(f"{log_prefix} {failure}. Order stands.")

    def _issue_downloads(self, order: Order):
        try:
            return self.downloads.create_downloads(order)
        except StorageUnavailable as e:
            log.error(f"[Order: {order.id}] Download links not stored: {e}. Order stands.")
            return []
