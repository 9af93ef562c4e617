"""
Order listing for the current quota cycle
"""

from typing import List

import structlog

from mascote.core.errors import InvalidStatus, StorageError
from mascote.models.order import OrderStatus
from mascote.services.layout import ORDER_ID_PATTERN, StorageLayout
from mascote.services.orders import read_status_marker
from mascote.services.quota import QuotaCycleManager

logger = structlog.get_logger(__name__)


class OrderQueryService:
    """Lists a client's orders of the current cycle by status"""

    def __init__(self, cycles: QuotaCycleManager, storage: StorageLayout):
        self.cycles = cycles
        self.storage = storage

    def list_orders(self, client_id: str, status_filter: str | OrderStatus) -> List[str]:
        """Ids of current-cycle orders whose status marker equals the filter

        Callers must not rely on the ordering of the result.
        """
        wanted = OrderStatus.parse(status_filter)
        if wanted is None:
            raise InvalidStatus(f"Unknown status: {status_filter!r}")

        cycle_dir = self.storage.cycle_dir(client_id, self.cycles.current_cycle_key())
        if not cycle_dir.is_dir():
            return []

        try:
            entries = sorted(entry for entry in cycle_dir.iterdir() if entry.is_dir())
        except OSError as e:
            logger.error("Order listing failed", client_id=client_id, error=str(e))
            raise StorageError(f"Cannot list orders: {e}") from e

        matches = []
        for entry in entries:
            # Skips staging directories of orders still being created
            if not ORDER_ID_PATTERN.match(entry.name):
                continue
            if read_status_marker(entry) == wanted:
                matches.append(entry.name)
        return matches

    def list_new_orders(self, client_id: str) -> List[str]:
        return self.list_orders(client_id, OrderStatus.NEW)
