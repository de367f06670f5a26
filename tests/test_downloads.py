"""Tests for the digital download link store."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from freezegun import freeze_time

from checkout_service.downloads import DOWNLOAD_VALIDITY, MAX_DOWNLOADS, DigitalDownloadStore
from checkout_service.exceptions import (
    DownloadExpired,
    DownloadLimitReached,
    DownloadNotFound,
    StorageUnavailable,
)
from checkout_service.models import OrderLineItem

ISSUED_AT = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def downloads(storage):
    return DigitalDownloadStore(storage)


@pytest.fixture()
def ebook_order(order_factory):
    items = [
        OrderLineItem(product_id="2", product_title="Padrões de Projeto", quantity=1, price=Decimal("129.90"), type="ebook"),
        OrderLineItem(product_id="1", product_title="Código Limpo", quantity=1, price=Decimal("89.90"), type="physical"),
        OrderLineItem(product_id="5", product_title="Inteligência Artificial", quantity=1, price=Decimal("249.90"), type="ebook"),
    ]
    return order_factory("order_1", items=items)


class TestCreateDownloads:
    @freeze_time(ISSUED_AT)
    def test_one_link_per_ebook_line(self, storage, downloads, ebook_order):
        created = downloads.create_downloads(ebook_order)

        assert [d.product_id for d in created] == ["2", "5"]
        assert all(d.expires_at == ISSUED_AT + DOWNLOAD_VALIDITY for d in created)
        assert all(d.max_downloads == MAX_DOWNLOADS and d.download_count == 0 for d in created)
        assert len({d.download_url for d in created}) == 2
        assert len(storage.get("digital_downloads")) == 2

    def test_order_without_ebooks_stores_nothing(self, storage, downloads, order_factory):
        assert downloads.create_downloads(order_factory()) == []
        assert storage.get("digital_downloads") is None

    def test_links_of_several_orders_coexist(self, downloads, ebook_order, order_factory):
        downloads.create_downloads(ebook_order)
        downloads.create_downloads(ebook_order.model_copy(update={"id": "order_2"}))

        assert len(downloads.list_for_order("order_1")) == 2
        assert len(downloads.list_for_order("order_2")) == 2
        assert downloads.list_for_order("missing") == []


class TestRecordDownload:
    def test_counts_each_use(self, downloads, ebook_order):
        download = downloads.create_downloads(ebook_order)[0]

        assert downloads.record_download(download.id).download_count == 1
        assert downloads.record_download(download.id).download_count == 2
        assert downloads.get_download(download.id).download_count == 2

    def test_refuses_once_the_limit_is_reached(self, downloads, ebook_order):
        first, second = downloads.create_downloads(ebook_order)
        for _ in range(MAX_DOWNLOADS):
            downloads.record_download(first.id)

        with pytest.raises(DownloadLimitReached) as excinfo:
            downloads.record_download(first.id)

        assert excinfo.value.max_downloads == MAX_DOWNLOADS
        assert downloads.get_download(first.id).download_count == MAX_DOWNLOADS
        assert downloads.get_download(second.id).download_count == 0

    def test_refuses_expired_links(self, downloads, ebook_order):
        with freeze_time(ISSUED_AT):
            download = downloads.create_downloads(ebook_order)[0]

        with freeze_time(ISSUED_AT + DOWNLOAD_VALIDITY - timedelta(seconds=1)):
            assert downloads.record_download(download.id).download_count == 1

        with freeze_time(ISSUED_AT + DOWNLOAD_VALIDITY):
            with pytest.raises(DownloadExpired):
                downloads.record_download(download.id)

    def test_unknown_link(self, downloads):
        assert downloads.get_download("missing") is None
        with pytest.raises(DownloadNotFound):
            downloads.record_download("missing")


def test_corrupt_slot_raises_storage_unavailable(storage, downloads):
    storage.set("digital_downloads", [{"id": "broken"}])

    with pytest.raises(StorageUnavailable) as excinfo:
        downloads.get_download("broken")
    assert excinfo.value.key == "digital_downloads"
