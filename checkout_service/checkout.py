"""
checkout.py — Checkout State Machine

Four linear steps:

    CUSTOMER (0) → SHIPPING (1) → PAYMENT (2) → CONFIRMATION (3)

A step counts as completed once its selection is set (the confirmation step
once an order is attached). Step n can only be entered when every step
before it is completed; going back is always allowed.

The session is written to the 'checkout_data' slot after every change and
reloaded on construction, so an interrupted checkout survives a restart.
"""

from typing import List, Optional

from .exceptions import StepLocked
from .logging_config import get_logger
from .models import CheckoutSession, CheckoutStep, Customer, Order, PaymentSelection, ShippingSelection

log = get_logger(__name__)

CHECKOUT_KEY = "checkout_data"

CUSTOMER_STEP = 0
SHIPPING_STEP = 1
PAYMENT_STEP = 2
CONFIRMATION_STEP = 3

STEP_DEFINITIONS = [
    ("customer", "Dados Pessoais", "Informações do cliente"),
    ("shipping", "Entrega", "Método e endereço de entrega"),
    ("payment", "Pagamento", "Forma de pagamento"),
    ("confirmation", "Confirmação", "Revisar e finalizar"),
]


class CheckoutStateMachine:
    def __init__(self, storage, key=CHECKOUT_KEY):
        self.storage = storage
        self.key = key
        raw = storage.get(key)
        self.session = CheckoutSession.model_validate(raw) if raw else CheckoutSession()

    def _save(self) -> None:
        self.storage.set(self.key, self.session.model_dump(mode="json"))

    def _update(self, **changes) -> None:
        self.session = self.session.model_copy(update=changes)
        self._save()

    # --- Accessors ---

    @property
    def current_step(self) -> int:
        return self.session.current_step

    @property
    def customer(self) -> Optional[Customer]:
        return self.session.customer

    @property
    def shipping(self) -> Optional[ShippingSelection]:
        return self.session.shipping

    @property
    def payment(self) -> Optional[PaymentSelection]:
        return self.session.payment

    @property
    def order(self) -> Optional[Order]:
        return self.session.order

    # --- Step data ---

    def set_customer(self, customer: Optional[Customer]) -> None:
        self._update(customer=customer)

    def set_shipping(self, shipping: Optional[ShippingSelection]) -> None:
        self._update(shipping=shipping)

    def set_payment(self, payment: Optional[PaymentSelection]) -> None:
        self._update(payment=payment)

    def set_order(self, order: Optional[Order]) -> None:
        self._update(order=order)

    # --- Navigation ---

    def is_step_completed(self, step: int) -> bool:
        completed = {
            CUSTOMER_STEP: self.session.customer is not None,
            SHIPPING_STEP: self.session.shipping is not None,
            PAYMENT_STEP: self.session.payment is not None,
            CONFIRMATION_STEP: self.session.order is not None,
        }
        return completed.get(step, False)

    def can_proceed_to_step(self, step: int) -> bool:
        """True iff every step before `step` is completed (step 0 is always open)."""
        if step not in range(CUSTOMER_STEP, CONFIRMATION_STEP + 1):
            return False
        return all(self.is_step_completed(previous) for previous in range(step))

    def set_current_step(self, step: int) -> None:
        """
        Moves the wizard to `step` without checking the gate.

        Callers navigating forward must consult can_proceed_to_step() first,
        or use advance_to().
        """
        if step not in range(CUSTOMER_STEP, CONFIRMATION_STEP + 1):
            raise ValueError(f"checkout step must be between 0 and 3, got {step}")
        self._update(current_step=step)

    def advance_to(self, step: int) -> None:
        """Gated navigation: raises StepLocked if a previous step is still open."""
        if not self.can_proceed_to_step(step):
            raise StepLocked(step)
        self.set_current_step(step)

    def steps(self) -> List[CheckoutStep]:
        return [
            CheckoutStep(
                id=step_id,
                title=title,
                description=description,
                completed=self.is_step_completed(index),
                current=self.session.current_step == index,
            )
            for index, (step_id, title, description) in enumerate(STEP_DEFINITIONS)
        ]

    def missing_fields(self) -> List[str]:
        """Selections still missing for order completion, in 'customer, payment, shipping' order."""
        missing = []
        if self.session.customer is None:
            missing.append("customer")
        if self.session.payment is None:
            missing.append("payment")
        if self.session.shipping is None:
            missing.append("shipping")
        return missing

    def reset_checkout(self) -> None:
        """Clears all selections and the attached order, back to step 0, and drops the saved session."""
        self.session = CheckoutSession()
        self.storage.remove(self.key)
        log.info("[Checkout] Session reset.")
