"""
container.py — Explicit Wiring of the Checkout Components

Builds every component once, from the settings, and hands each one its
collaborators through the constructor. The API layer receives a ready
Container; tests build one with an in-memory storage and in-process mock
services.
"""

from typing import Optional

from .cart import Cart
from .catalog import ProductCatalog
from .checkout import CheckoutStateMachine
from .clients import PaymentClient, PaymentGateway, ShippingClient, ShippingProvider
from .config import Settings, get_settings
from .downloads import DigitalDownloadStore
from .models import Address
from .repository import OrderRepository
from .storage import JsonFileStorage, Storage
from .stores import AdminManagementStore, CustomerHistoryStore
from .sync import OrderSyncEngine
from .workflow import OrderCompletionWorkflow

# Where physical books ship from; origin of every shipping quote.
STORE_ADDRESS = Address(
    cep="01310-100",
    street="Avenida Paulista",
    number="1000",
    neighborhood="Bela Vista",
    city="São Paulo",
    state="SP",
)


class Container:
    """
    Holds one instance of every component.

    Args:
        storage (Storage): Durable key-value backend shared by all slots.
        payment_gateway (PaymentGateway): Payment collaborator.
        shipping_provider (ShippingProvider): Shipping collaborator.
        authorize_payment (bool): Forwarded to the completion workflow.
    """

    def __init__(self, storage: Storage, payment_gateway: PaymentGateway,
                 shipping_provider: ShippingProvider, authorize_payment: bool = False):
        self.storage = storage
        self.payment_gateway = payment_gateway
        self.shipping_provider = shipping_provider

        self.catalog = ProductCatalog(storage)
        self.cart = Cart(storage)
        self.history_store = CustomerHistoryStore(storage)
        self.management_store = AdminManagementStore(storage)
        self.sync_engine = OrderSyncEngine(self.history_store, self.management_store)
        self.repository = OrderRepository(self.history_store, self.management_store, self.sync_engine)
        self.downloads = DigitalDownloadStore(storage)
        self.checkout = CheckoutStateMachine(storage)
        self.workflow = OrderCompletionWorkflow(
            checkout=self.checkout,
            cart=self.cart,
            repository=self.repository,
            catalog=self.catalog,
            payment_gateway=payment_gateway,
            downloads=self.downloads,
            authorize_payment=authorize_payment,
        )

    def close(self):
        for client in (self.payment_gateway, self.shipping_provider):
            close = getattr(client, "close", None)
            if close:
                close()


def build_container(settings: Optional[Settings] = None) -> Container:
    """Builds the production wiring: JSON files on disk and HTTP clients for the collaborators."""
    settings = settings or get_settings()
    return Container(
        storage=JsonFileStorage(settings.storage_dir),
        payment_gateway=PaymentClient(settings.payment_service_url, settings.payment_read_timeout),
        shipping_provider=ShippingClient(settings.shipping_service_url),
        authorize_payment=settings.authorize_payment,
    )
