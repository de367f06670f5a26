"""
main.py — FastAPI Entry Point for the Checkout Service

This module provides the REST API of the bookstore storefront backend.
It exposes the catalog, the cart, the four-step checkout and both order
views (customer purchase history and admin order management).

Responsibilities:
    • Serve catalog and cart operations
    • Drive the checkout wizard and trigger order completion
    • Expose purchase history and e-book download links to customers
    • Expose order management (status changes, sync, import/export) to admins
    • Provide system health information
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from .container import STORE_ADDRESS, Container, build_container
from .exceptions import (
    CheckoutServiceError,
    DownloadExpired,
    DownloadLimitReached,
    DownloadNotFound,
    EmptyCart,
    IncompleteCheckout,
    InsufficientStock,
    InvalidImport,
    InvalidStatusTransition,
    OrderNotFound,
    PaymentFailed,
    PaymentTimeout,
    ProductNotFound,
    ShippingUnavailable,
    StepLocked,
    StorageUnavailable,
    SyncFailure,
)
from .lifecycle import STATUS_LABELS, available_actions
from .logging_config import get_logger, setup_logging
from .models import (
    Address,
    Customer,
    Dimensions,
    OrderFilters,
    OrderStatus,
    PaymentSelection,
    ShippingSelection,
)

log = get_logger(__name__)

ERROR_STATUS_CODES = {
    IncompleteCheckout: 422,
    EmptyCart: 422,
    StepLocked: 422,
    InvalidImport: 422,
    InsufficientStock: 409,
    InvalidStatusTransition: 409,
    DownloadLimitReached: 409,
    OrderNotFound: 404,
    ProductNotFound: 404,
    DownloadNotFound: 404,
    DownloadExpired: 410,
    PaymentFailed: 402,
    PaymentTimeout: 504,
    ShippingUnavailable: 503,
    SyncFailure: 503,
    StorageUnavailable: 503,
}


# --- Request bodies ---

class CartItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, gt=0)


class QuantityRequest(BaseModel):
    quantity: int


class StepRequest(BaseModel):
    step: int
    gated: bool = True


class StatusRequest(BaseModel):
    status: OrderStatus


class BulkStatusRequest(BaseModel):
    order_ids: List[str]
    status: OrderStatus


class QuoteRequest(BaseModel):
    destination: Address
    weight: float = Field(..., gt=0)
    dimensions: Dimensions


class ImportRequest(BaseModel):
    orders_json: str


# --- Dependencies ---

def get_container(request: Request) -> Container:
    return request.app.state.container


def require_admin(x_role: str = Header(default="customer", alias="X-Role")):
    """Trivial role gate for the admin routes."""
    if x_role != "admin":
        raise HTTPException(status_code=403, detail="Admin role required.")


def _filters(status: Optional[OrderStatus] = None, start_date: Optional[datetime] = None,
             end_date: Optional[datetime] = None, search: Optional[str] = None,
             customer_email: Optional[str] = None) -> OrderFilters:
    return OrderFilters(status=status, start_date=start_date, end_date=end_date,
                        search_term=search, customer_email=customer_email)


def _checkout_view(container: Container) -> dict:
    checkout = container.checkout
    return {
        "session": checkout.session.model_dump(mode="json"),
        "steps": [step.model_dump() for step in checkout.steps()],
        "can_proceed": {step: checkout.can_proceed_to_step(step) for step in range(4)},
    }


def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        container (Container | None): Pre-built components (tests). If omitted,
            logging is configured and the production wiring is built at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.container is None
        if owned:
            setup_logging()
            app.state.container = build_container()
        log.info("Checkout service starting...")
        yield
        if owned:
            app.state.container.close()

    app = FastAPI(title="Bookstore Checkout Service", lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(CheckoutServiceError)
    async def handle_service_error(request: Request, exc: CheckoutServiceError):
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        body = {"detail": str(exc), "error": exc.kind}
        if isinstance(exc, IncompleteCheckout):
            body["missing_fields"] = exc.missing_fields
        if status_code >= 500:
            log.error(f"[API] {request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_code, content=body)

    # --- Health ---

    @app.get("/health")
    def health_check():
        """
        Simple health check endpoint for monitoring systems or container orchestrators.

        Returns:
            dict: A basic JSON object indicating service availability.
        """
        return {"status": "ok"}

    # --- Catalog ---

    @app.get("/v1/products")
    def list_products(c: Container = Depends(get_container)):
        return c.catalog.list_products()

    @app.get("/v1/products/{product_id}")
    def get_product(product_id: str, c: Container = Depends(get_container)):
        product = c.catalog.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    # --- Cart ---

    @app.get("/v1/cart")
    def get_cart(c: Container = Depends(get_container)):
        return {"lines": c.cart.lines(), "total_items": c.cart.total_items(), "total_price": c.cart.total_price()}

    @app.post("/v1/cart/items", status_code=201)
    def add_cart_item(body: CartItemRequest, c: Container = Depends(get_container)):
        product = c.catalog.get_by_id(body.product_id)
        if product is None:
            raise ProductNotFound(body.product_id)
        return {"lines": c.cart.add(product, body.quantity)}

    @app.patch("/v1/cart/items/{product_id}")
    def update_cart_item(product_id: str, body: QuantityRequest, c: Container = Depends(get_container)):
        return {"lines": c.cart.update_quantity(product_id, body.quantity)}

    @app.delete("/v1/cart/items/{product_id}")
    def remove_cart_item(product_id: str, c: Container = Depends(get_container)):
        return {"lines": c.cart.remove(product_id)}

    @app.delete("/v1/cart", status_code=204)
    def clear_cart(c: Container = Depends(get_container)):
        c.cart.clear()

    # --- Checkout ---

    @app.get("/v1/checkout")
    def get_checkout(c: Container = Depends(get_container)):
        return _checkout_view(c)

    @app.put("/v1/checkout/customer")
    def set_customer(customer: Customer, c: Container = Depends(get_container)):
        c.checkout.set_customer(customer)
        return _checkout_view(c)

    @app.put("/v1/checkout/shipping")
    def set_shipping(shipping: ShippingSelection, c: Container = Depends(get_container)):
        c.checkout.set_shipping(shipping)
        return _checkout_view(c)

    @app.put("/v1/checkout/payment")
    def set_payment(payment: PaymentSelection, c: Container = Depends(get_container)):
        c.checkout.set_payment(payment)
        return _checkout_view(c)

    @app.put("/v1/checkout/step")
    def set_step(body: StepRequest, c: Container = Depends(get_container)):
        if body.step not in range(4):
            raise HTTPException(status_code=422, detail=f"Invalid checkout step: {body.step}")
        if body.gated:
            c.checkout.advance_to(body.step)
        else:
            c.checkout.set_current_step(body.step)
        return _checkout_view(c)

    @app.post("/v1/checkout/complete", status_code=201)
    def complete_checkout(c: Container = Depends(get_container)):
        """
        Completes the checkout and returns the order confirmation.

        The session and cart stay untouched when completion fails, so the
        client can simply retry.
        """
        confirmation = c.workflow.complete_order()
        log.info(f"[Order: {confirmation.order.id}] Checkout completed via API.")
        return confirmation

    @app.delete("/v1/checkout", status_code=204)
    def reset_checkout(c: Container = Depends(get_container)):
        c.checkout.reset_checkout()

    # --- Shipping ---

    @app.post("/v1/shipping/quotes")
    def shipping_quotes(body: QuoteRequest, c: Container = Depends(get_container)):
        provider = c.shipping_provider
        correios = provider.calculate_shipping(STORE_ADDRESS, body.destination, body.weight, body.dimensions)
        return {"options": correios + provider.pickup_options() + provider.digital_options()}

    @app.get("/v1/shipping/tracking/{tracking_code}")
    def track_package(tracking_code: str, c: Container = Depends(get_container)):
        return c.shipping_provider.track_package(tracking_code)

    # --- Purchase history (customer) ---

    @app.get("/v1/orders")
    def purchase_history(filters: OrderFilters = Depends(_filters), c: Container = Depends(get_container)):
        return c.repository.list_customer_orders(filters)

    @app.get("/v1/orders/stats")
    def purchase_stats(c: Container = Depends(get_container)):
        return c.history_store.get_stats()

    @app.get("/v1/orders/{order_id}")
    def get_order(order_id: str, c: Container = Depends(get_container)):
        order = c.repository.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    @app.get("/v1/orders/{order_id}/downloads")
    def order_downloads(order_id: str, c: Container = Depends(get_container)):
        if c.repository.get_order(order_id) is None:
            raise OrderNotFound(order_id)
        return c.downloads.list_for_order(order_id)

    # --- Digital downloads ---

    @app.get("/v1/downloads/{download_id}")
    def get_download(download_id: str, c: Container = Depends(get_container)):
        download = c.downloads.get_download(download_id)
        if download is None:
            raise DownloadNotFound(download_id)
        return download

    @app.post("/v1/downloads/{download_id}/record")
    def record_download(download_id: str, c: Container = Depends(get_container)):
        """Counts one use of a download link; refused once the link is used up or expired."""
        return c.downloads.record_download(download_id)

    # --- Order management (admin) ---

    admin = [Depends(require_admin)]

    @app.get("/v1/admin/orders", dependencies=admin)
    def admin_orders(filters: OrderFilters = Depends(_filters), c: Container = Depends(get_container)):
        return [
            {
                "order": order,
                "status_label": STATUS_LABELS[order.status],
                "actions": available_actions(order.status),
            }
            for order in c.repository.list_admin_orders(filters)
        ]

    @app.get("/v1/admin/orders/stats", dependencies=admin)
    def admin_stats(c: Container = Depends(get_container)):
        return c.management_store.get_stats()

    @app.get("/v1/admin/orders/export", dependencies=admin, response_class=PlainTextResponse)
    def export_orders(c: Container = Depends(get_container)):
        return c.management_store.export_orders()

    @app.post("/v1/admin/orders/import", dependencies=admin)
    def import_orders(body: ImportRequest, c: Container = Depends(get_container)):
        return {"imported": c.management_store.import_orders(body.orders_json)}

    @app.post("/v1/admin/orders/sync", dependencies=admin)
    def sync_orders(c: Container = Depends(get_container)):
        return c.sync_engine.sync_all()

    @app.post("/v1/admin/orders/bulk-status", dependencies=admin)
    def bulk_status(body: BulkStatusRequest, c: Container = Depends(get_container)):
        return c.repository.bulk_update_status(body.order_ids, body.status)

    @app.post("/v1/admin/orders/{order_id}/status", dependencies=admin)
    def update_status(order_id: str, body: StatusRequest, c: Container = Depends(get_container)):
        return c.repository.update_status(order_id, body.status, origin="admin")

    @app.post("/v1/admin/orders/{order_id}/advance", dependencies=admin)
    def advance_order(order_id: str, c: Container = Depends(get_container)):
        return c.repository.advance(order_id, origin="admin")

    @app.post("/v1/admin/orders/{order_id}/cancel", dependencies=admin)
    def cancel_order(order_id: str, c: Container = Depends(get_container)):
        return c.repository.cancel(order_id, origin="admin")

    @app.delete("/v1/admin/orders", dependencies=admin, status_code=204)
    def clear_orders(c: Container = Depends(get_container)):
        c.repository.clear_all()

    return app


app = create_app()
