"""
On-disk layout of orders and team asset profiles

    <orders>/<client_id>/<cycle_key>/<order_id>/
        order.json, status.txt,
        team_shield.png, opponent_shield.png, mascot.png,
        sponsors/sponsor01.png ...
    <teams>/<client_id>/shield.png, mascot.png
"""

from pathlib import Path
import re

from mascote.core.errors import ClientNotFound, OrderNotFound
from mascote.core.storage import KeyedLock, is_safe_segment

ORDER_RECORD = "order.json"
STATUS_MARKER = "status.txt"
SPONSORS_DIR = "sponsors"
TEAM_SHIELD = "team_shield.png"
OPPONENT_SHIELD = "opponent_shield.png"
MASCOT = "mascot.png"
PROFILE_SHIELD = "shield.png"
PROFILE_MASCOT = "mascot.png"

ORDER_ID_PATTERN = re.compile(r"^\d{8}_\d{6}(-\d+)?$")


def sponsor_filename(position: int) -> str:
    """File name of the n-th sponsor image, 1-based"""
    return f"sponsor{position:02d}.png"


class StorageLayout:
    """Resolves client, cycle and order identifiers to directories"""

    def __init__(self, orders_dir: Path, teams_dir: Path):
        self.orders_dir = Path(orders_dir)
        self.teams_dir = Path(teams_dir)
        self._order_locks = KeyedLock()

    def client_orders_dir(self, client_id: str) -> Path:
        if not is_safe_segment(client_id):
            raise ClientNotFound()
        return self.orders_dir / client_id

    def cycle_dir(self, client_id: str, cycle_key: str) -> Path:
        return self.client_orders_dir(client_id) / cycle_key

    def team_dir(self, client_id: str) -> Path:
        if not is_safe_segment(client_id):
            raise ClientNotFound()
        return self.teams_dir / client_id

    def order_dir(self, client_id: str, cycle_key: str, order_id: str) -> Path:
        """Existing order directory, or OrderNotFound"""
        if not order_id or not ORDER_ID_PATTERN.match(order_id):
            raise OrderNotFound()
        path = self.cycle_dir(client_id, cycle_key) / order_id
        if not path.is_dir():
            raise OrderNotFound()
        return path

    def lock_order(self, order_dir: Path):
        """Lock held while an order's files are read or rewritten"""
        return self._order_locks.hold(str(order_dir))
