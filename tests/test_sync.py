"""Tests for OrderSyncEngine and OrderRepository (dual-store consistency)."""

from unittest import mock

import pytest
from freezegun import freeze_time

from checkout_service.exceptions import (
    InvalidStatusTransition,
    OrderNotFound,
    StorageUnavailable,
    SyncFailure,
)
from checkout_service.models import OrderStatus
from checkout_service.repository import OrderRepository
from checkout_service.stores import AdminManagementStore, CustomerHistoryStore
from checkout_service.sync import OrderSyncEngine


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def history(storage):
    return CustomerHistoryStore(storage)


@pytest.fixture()
def management(storage):
    return AdminManagementStore(storage)


@pytest.fixture()
def engine(history, management):
    return OrderSyncEngine(history, management)


@pytest.fixture()
def repository(history, management, engine):
    return OrderRepository(history, management, engine)


# ---------------------------------------------------------------------------
# sync_order_status
# ---------------------------------------------------------------------------


class TestSyncOrderStatus:
    @freeze_time("2026-03-11 08:00:00")
    def test_updates_both_stores_with_same_timestamp(self, engine, history, management, order_factory):
        order = order_factory("order_1", status=OrderStatus.PAID)
        history.add_order(order)
        management.add_order(order)

        result = engine.sync_order_status("order_1", OrderStatus.SHIPPED)

        in_history = history.get_order("order_1")
        in_management = management.get_order("order_1")
        assert result.status == OrderStatus.SHIPPED
        assert in_history == in_management
        assert in_history.updated_at.isoformat() == "2026-03-11T08:00:00+00:00"

    def test_copies_record_missing_from_history(self, engine, history, management, order_factory):
        management.add_order(order_factory("order_1", status=OrderStatus.PAID))

        engine.sync_order_status("order_1", OrderStatus.SHIPPED)

        copied = history.get_order("order_1")
        assert copied is not None
        assert copied.status == OrderStatus.SHIPPED
        assert copied == management.get_order("order_1")

    def test_copies_record_missing_from_management(self, engine, history, management, order_factory):
        history.add_order(order_factory("order_1", status=OrderStatus.PAID))

        engine.sync_order_status("order_1", "cancelled", origin="customer")

        assert management.get_order("order_1").status == OrderStatus.CANCELLED
        assert history.get_order("order_1").status == OrderStatus.CANCELLED

    def test_same_status_twice_is_a_no_op(self, engine, history, management, order_factory):
        order = order_factory("order_1", status=OrderStatus.PAID)
        history.add_order(order)
        management.add_order(order)

        with freeze_time("2026-03-11 08:00:00"):
            first = engine.sync_order_status("order_1", OrderStatus.SHIPPED)
        with freeze_time("2026-03-12 08:00:00"):
            second = engine.sync_order_status("order_1", OrderStatus.SHIPPED)

        assert second == first
        assert history.get_order("order_1").updated_at == first.updated_at
        assert management.get_order("order_1").updated_at == first.updated_at

    def test_lagging_copy_catches_up(self, engine, history, management, order_factory, later):
        history.add_order(order_factory("order_1", status=OrderStatus.PAID))
        management.add_order(order_factory("order_1", status=OrderStatus.SHIPPED, updated_at=later(5)))

        engine.sync_order_status("order_1", OrderStatus.DELIVERED)

        assert history.get_order("order_1").status == OrderStatus.DELIVERED
        assert management.get_order("order_1").status == OrderStatus.DELIVERED

    def test_backwards_move_writes_nothing(self, engine, history, management, order_factory, later):
        history.add_order(order_factory("order_1", status=OrderStatus.PAID))
        management.add_order(order_factory("order_1", status=OrderStatus.DELIVERED, updated_at=later(5)))

        with pytest.raises(InvalidStatusTransition):
            engine.sync_order_status("order_1", OrderStatus.SHIPPED)

        assert history.get_order("order_1").status == OrderStatus.PAID

    def test_schema_corrupt_store_is_reported_as_sync_failure(self, engine, storage, history, management, order_factory):
        history.add_order(order_factory("order_1", status=OrderStatus.PAID))
        storage.set("order_management", [{"id": "broken"}])

        with pytest.raises(SyncFailure) as excinfo:
            engine.sync_order_status("order_1", OrderStatus.SHIPPED)

        assert excinfo.value.store_name == "order_management"
        assert history.get_order("order_1").status == OrderStatus.PAID

        with pytest.raises(SyncFailure):
            engine.sync_all()
        assert management.get_order("order_1").status == OrderStatus.DELIVERED

    def test_unknown_order(self, engine):
        with pytest.raises(OrderNotFound):
            engine.sync_order_status("missing", OrderStatus.SHIPPED)

    def test_store_failure_is_reported_as_sync_failure(self, engine, history, management, order_factory):
        order = order_factory("order_1", status=OrderStatus.PAID)
        history.add_order(order)
        management.add_order(order)

        with mock.patch.object(history, "add_order", side_effect=StorageUnavailable("purchase_history", "disk full")):
            with pytest.raises(SyncFailure) as excinfo:
                engine.sync_order_status("order_1", OrderStatus.SHIPPED)

        assert excinfo.value.store_name == "purchase_history"
        # the admin store was written first and stays ahead until the next sync
        assert management.get_order("order_1").status == OrderStatus.SHIPPED
        assert history.get_order("order_1").status == OrderStatus.PAID


# ---------------------------------------------------------------------------
# sync_all / get_authoritative_copy
# ---------------------------------------------------------------------------


class TestSyncAll:
    def test_reconciles_both_directions(self, engine, history, management, order_factory, later):
        history.add_order(order_factory("only_history"))
        management.add_order(order_factory("only_management"))
        history.add_order(order_factory("both", status=OrderStatus.PAID))
        management.add_order(order_factory("both", status=OrderStatus.SHIPPED, updated_at=later(10)))

        report = engine.sync_all()

        assert report.copied_to_history == 1
        assert report.copied_to_management == 1
        assert report.updated == 1
        assert {o.id for o in history.list_orders()} == {"only_history", "only_management", "both"}
        assert {o.id for o in management.list_orders()} == {"only_history", "only_management", "both"}
        assert history.get_order("both").status == OrderStatus.SHIPPED

    def test_second_pass_changes_nothing(self, engine, history, order_factory):
        history.add_order(order_factory("order_1"))
        engine.sync_all()

        report = engine.sync_all()

        assert (report.copied_to_history, report.copied_to_management, report.updated) == (0, 0, 0)


class TestAuthoritativeCopy:
    def test_later_update_wins(self, engine, history, management, order_factory, later):
        history.add_order(order_factory("order_1", status=OrderStatus.CANCELLED, updated_at=later(30)))
        management.add_order(order_factory("order_1", status=OrderStatus.SHIPPED, updated_at=later(10)))

        assert engine.get_authoritative_copy("order_1").status == OrderStatus.CANCELLED
        # read-only: nothing was reconciled
        assert management.get_order("order_1").status == OrderStatus.SHIPPED

    def test_tie_goes_to_admin_copy(self, engine, history, management, order_factory, later):
        history.add_order(order_factory("order_1", status=OrderStatus.PAID, updated_at=later(10)))
        management.add_order(order_factory("order_1", status=OrderStatus.SHIPPED, updated_at=later(10)))

        assert engine.get_authoritative_copy("order_1").status == OrderStatus.SHIPPED

    def test_single_copy_and_missing(self, engine, history, order_factory):
        history.add_order(order_factory("order_1"))
        assert engine.get_authoritative_copy("order_1").id == "order_1"
        assert engine.get_authoritative_copy("missing") is None


# ---------------------------------------------------------------------------
# OrderRepository
# ---------------------------------------------------------------------------


class TestRepository:
    def test_add_order_writes_both_stores(self, repository, history, management, order_factory):
        order = order_factory("order_1")
        repository.add_order(order)
        assert history.get_order("order_1") == order
        assert management.get_order("order_1") == order

    def test_add_order_rolls_back_when_second_write_fails(self, repository, history, management, order_factory):
        failure = StorageUnavailable("order_management", "disk full")
        with mock.patch.object(management, "add_order", side_effect=failure):
            with pytest.raises(StorageUnavailable):
                repository.add_order(order_factory("order_1"))

        assert history.get_order("order_1") is None
        assert management.get_order("order_1") is None

    def test_add_order_rolls_back_on_schema_corrupt_admin_store(self, repository, storage, history, order_factory):
        storage.set("order_management", [{"id": "broken"}])

        with pytest.raises(StorageUnavailable):
            repository.add_order(order_factory("order_1"))

        assert history.get_order("order_1") is None
        assert storage.get("order_management") == [{"id": "broken"}]

    def test_update_status_allows_only_single_steps(self, repository, order_factory):
        repository.add_order(order_factory("order_1", status=OrderStatus.PENDING))

        with pytest.raises(InvalidStatusTransition):
            repository.update_status("order_1", OrderStatus.SHIPPED)

        assert repository.update_status("order_1", OrderStatus.PAID).status == OrderStatus.PAID

    def test_advance_walks_the_happy_path(self, repository, history, order_factory):
        repository.add_order(order_factory("order_1", status=OrderStatus.PAID))

        assert repository.advance("order_1").status == OrderStatus.SHIPPED
        assert repository.advance("order_1").status == OrderStatus.DELIVERED
        with pytest.raises(InvalidStatusTransition):
            repository.advance("order_1")
        assert history.get_order("order_1").status == OrderStatus.DELIVERED

    def test_cancel_is_terminal(self, repository, order_factory):
        repository.add_order(order_factory("order_1", status=OrderStatus.SHIPPED))

        assert repository.cancel("order_1").status == OrderStatus.CANCELLED
        with pytest.raises(InvalidStatusTransition):
            repository.update_status("order_1", OrderStatus.DELIVERED)

    def test_unknown_order(self, repository):
        with pytest.raises(OrderNotFound):
            repository.update_status("missing", OrderStatus.PAID)
        with pytest.raises(OrderNotFound):
            repository.advance("missing")

    def test_bulk_update_reports_rejections(self, repository, management, order_factory):
        repository.add_order(order_factory("a", status=OrderStatus.PAID))
        repository.add_order(order_factory("b", status=OrderStatus.DELIVERED))

        result = repository.bulk_update_status(["a", "b", "missing"], OrderStatus.SHIPPED)

        assert result.updated == ["a"]
        assert set(result.rejected) == {"b", "missing"}
        assert management.get_order("a").status == OrderStatus.SHIPPED
        assert management.get_order("b").status == OrderStatus.DELIVERED

    def test_clear_all(self, repository, history, management, order_factory):
        repository.add_order(order_factory("order_1"))
        repository.clear_all()
        assert history.list_orders() == []
        assert management.list_orders() == []
