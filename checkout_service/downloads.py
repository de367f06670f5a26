"""
downloads.py — Digital Download Links for E-book Orders

Every e-book line of a completed order gets one download link. Links live in
the 'digital_downloads' storage slot, so a customer can come back to them
after the confirmation page is gone.

Rules:
    • a link is valid for DOWNLOAD_VALIDITY after the order was completed
    • a link can be used MAX_DOWNLOADS times; record_download() refuses after that
"""

import secrets
import uuid
from datetime import timedelta
from typing import List, Optional

from pydantic import ValidationError

from .exceptions import DownloadExpired, DownloadLimitReached, DownloadNotFound, StorageUnavailable
from .logging_config import get_logger
from .models import DigitalDownload, Order, utcnow

log = get_logger(__name__)

DOWNLOADS_KEY = "digital_downloads"
DOWNLOAD_VALIDITY = timedelta(days=30)
MAX_DOWNLOADS = 5
DOWNLOAD_BASE_URL = "https://exemplo.com/download"


class DigitalDownloadStore:
    """
    Durable list of download links.

    Args:
        storage (Storage): Backend holding the slot.
        key (str): Slot name.
    """

    def __init__(self, storage, key=DOWNLOADS_KEY):
        self.storage = storage
        self.key = key

    def _load(self) -> List[DigitalDownload]:
        raw = self.storage.get(self.key) or []
        try:
            return [DigitalDownload.model_validate(record) for record in raw]
        except ValidationError as e:
            raise StorageUnavailable(self.key, f"invalid download record ({e.error_count()} errors)") from e

    def _save(self, downloads: List[DigitalDownload]) -> None:
        self.storage.set(self.key, [download.model_dump(mode="json") for download in downloads])

    def create_downloads(self, order: Order) -> List[DigitalDownload]:
        """
        Issues and stores one link per e-book line of `order`.

        Returns:
            list[DigitalDownload]: The new links; empty for orders without e-books.
        """
        expires_at = utcnow() + DOWNLOAD_VALIDITY
        created = [
            DigitalDownload(
                id=f"download_{uuid.uuid4().hex[:12]}",
                order_id=order.id,
                product_id=item.product_id,
                product_title=item.product_title,
                download_url=f"{DOWNLOAD_BASE_URL}/{item.product_id}?token={secrets.token_urlsafe(24)}",
                expires_at=expires_at,
                max_downloads=MAX_DOWNLOADS,
            )
            for item in order.items
            if item.type == "ebook"
        ]
        if created:
            self._save(self._load() + created)
            log.info(f"[Order: {order.id}] {len(created)} download link(s) issued.")
        return created

    def list_for_order(self, order_id: str) -> List[DigitalDownload]:
        return [download for download in self._load() if download.order_id == order_id]

    def get_download(self, download_id: str) -> Optional[DigitalDownload]:
        return next((download for download in self._load() if download.id == download_id), None)

    def record_download(self, download_id: str) -> DigitalDownload:
        """
        Counts one use of a download link.

        Returns:
            DigitalDownload: The link with its incremented counter.

        Raises:
            DownloadNotFound: If no link has this id.
            DownloadExpired: If the link is past its expiry date.
            DownloadLimitReached: If the link was already used max_downloads times.
        """
        downloads = self._load()
        for index, existing in enumerate(downloads):
            if existing.id != download_id:
                continue
            if utcnow() >= existing.expires_at:
                raise DownloadExpired(download_id, existing.expires_at)
            if existing.download_count >= existing.max_downloads:
                log.warning(f"[Order: {existing.order_id}] Download {download_id} refused, limit reached.")
                raise DownloadLimitReached(download_id, existing.max_downloads)
            updated = existing.model_copy(update={"download_count": existing.download_count + 1})
            downloads[index] = updated
            self._save(downloads)
            return updated
        raise DownloadNotFound(download_id)
