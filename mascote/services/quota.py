"""
Quota cycle management

Cycles are calendar months in a configured timezone. A client's usage counter
only counts toward the cycle recorded next to it; once the wall clock moves
into a new month the counter is logically zero until it is reset.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from mascote.models.client import Client

Clock = Callable[[], datetime]


def cycle_key_for(moment: datetime) -> str:
    """Cycle key (YYYY-MM) of a moment"""
    return moment.strftime("%Y-%m")


def reconcile(client: Client, cycle_key: str) -> bool:
    """Reset a stale usage counter in place; return True when a reset happened"""
    if client.cycle_key == cycle_key:
        return False

    client.cycle_key = cycle_key
    client.usage_count = 0
    return True


class QuotaCycleManager:
    """Provides the current cycle key and reconciles client counters against it"""

    def __init__(self, tz_name: str = "UTC", clock: Optional[Clock] = None):
        self.tz = ZoneInfo(tz_name)
        self._clock = clock

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(timezone.utc).astimezone(self.tz)

    def current_cycle_key(self) -> str:
        return cycle_key_for(self.now())

    def reconcile(self, client: Client) -> bool:
        return reconcile(client, self.current_cycle_key())

    def reconciled_view(self, client: Client) -> Client:
        """Copy of the record as it reads in the current cycle, for display"""
        view = client.model_copy()
        reconcile(view, self.current_cycle_key())
        return view
