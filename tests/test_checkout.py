"""Tests for the four-step checkout state machine."""

import pytest

from checkout_service.checkout import (
    CHECKOUT_KEY,
    CONFIRMATION_STEP,
    CUSTOMER_STEP,
    PAYMENT_STEP,
    SHIPPING_STEP,
    CheckoutStateMachine,
)
from checkout_service.exceptions import StepLocked
from checkout_service.storage import JsonFileStorage


@pytest.fixture()
def checkout(storage):
    return CheckoutStateMachine(storage)


class TestStepGate:
    def test_fresh_session(self, checkout):
        assert checkout.current_step == CUSTOMER_STEP
        assert checkout.can_proceed_to_step(CUSTOMER_STEP)
        assert not checkout.can_proceed_to_step(SHIPPING_STEP)
        assert checkout.missing_fields() == ["customer", "payment", "shipping"]

    def test_steps_unlock_in_order(self, checkout, customer, correios_shipping, card_payment):
        checkout.set_customer(customer)
        assert checkout.can_proceed_to_step(SHIPPING_STEP)
        assert not checkout.can_proceed_to_step(PAYMENT_STEP)

        checkout.set_shipping(correios_shipping)
        assert checkout.can_proceed_to_step(PAYMENT_STEP)
        assert not checkout.can_proceed_to_step(CONFIRMATION_STEP)

        checkout.set_payment(card_payment)
        assert checkout.can_proceed_to_step(CONFIRMATION_STEP)
        assert checkout.missing_fields() == []

    def test_gate_checks_every_previous_step(self, checkout, card_payment, correios_shipping):
        # payment and shipping set, customer still missing
        checkout.set_payment(card_payment)
        checkout.set_shipping(correios_shipping)

        assert checkout.is_step_completed(PAYMENT_STEP)
        assert not checkout.can_proceed_to_step(CONFIRMATION_STEP)
        assert checkout.missing_fields() == ["customer"]

    def test_out_of_range_steps(self, checkout):
        assert not checkout.can_proceed_to_step(4)
        assert not checkout.can_proceed_to_step(-1)
        with pytest.raises(ValueError):
            checkout.set_current_step(4)

    def test_set_current_step_is_not_gated(self, checkout):
        checkout.set_current_step(CONFIRMATION_STEP)
        assert checkout.current_step == CONFIRMATION_STEP

    def test_advance_to_is_gated(self, checkout, customer):
        with pytest.raises(StepLocked) as excinfo:
            checkout.advance_to(PAYMENT_STEP)
        assert excinfo.value.step == PAYMENT_STEP
        assert checkout.current_step == CUSTOMER_STEP

        checkout.set_customer(customer)
        checkout.advance_to(SHIPPING_STEP)
        assert checkout.current_step == SHIPPING_STEP

        # going back is always allowed
        checkout.advance_to(CUSTOMER_STEP)
        assert checkout.current_step == CUSTOMER_STEP

    def test_clearing_a_selection_reopens_the_step(self, checkout, customer):
        checkout.set_customer(customer)
        checkout.set_customer(None)
        assert not checkout.is_step_completed(CUSTOMER_STEP)

    def test_steps_view(self, checkout, customer):
        checkout.set_customer(customer)
        checkout.set_current_step(SHIPPING_STEP)

        steps = checkout.steps()
        assert [s.id for s in steps] == ["customer", "shipping", "payment", "confirmation"]
        assert [s.completed for s in steps] == [True, False, False, False]
        assert [s.current for s in steps] == [False, True, False, False]


class TestPersistence:
    def test_session_survives_restart(self, tmp_path, customer, pickup_shipping):
        first = CheckoutStateMachine(JsonFileStorage(str(tmp_path)))
        first.set_customer(customer)
        first.set_shipping(pickup_shipping)
        first.set_current_step(PAYMENT_STEP)

        restored = CheckoutStateMachine(JsonFileStorage(str(tmp_path)))

        assert restored.customer == customer
        assert restored.shipping == pickup_shipping
        assert restored.current_step == PAYMENT_STEP
        assert restored.payment is None

    def test_reset_clears_everything(self, storage, checkout, customer, card_payment):
        checkout.set_customer(customer)
        checkout.set_payment(card_payment)
        checkout.set_current_step(PAYMENT_STEP)

        checkout.reset_checkout()

        assert checkout.current_step == CUSTOMER_STEP
        assert checkout.customer is None
        assert checkout.payment is None
        assert storage.get(CHECKOUT_KEY) is None
        assert CheckoutStateMachine(storage).customer is None
