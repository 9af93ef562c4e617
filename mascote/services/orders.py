"""
Order lifecycle management

Creation runs entirely inside the client's critical section: reconcile the
quota cycle, check capacity, validate, stage every file in a hidden directory,
publish it under the order id, refresh the team asset profile and finally
record the usage in one client table write. Any failure after staging begins
undoes what was already published, so an order id is returned only when the
directory, the profile images and the usage increment are all in place.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple
import os
import shutil
import tempfile
import uuid

import structlog

from mascote.core.errors import (
    ClientInactive, InvalidOrder, InvalidStatus, OrderNotFound, QuotaExceeded, StorageError,
)
from mascote.core.storage import (
    atomic_write_json, atomic_write_text, ensure_dir, read_json,
)
from mascote.models.order import OrderRecord, OrderStatus
from mascote.schemas.order import OrderAssets, OrderFields, UploadedAsset
from mascote.services import layout
from mascote.services.client_store import ClientRecordStore
from mascote.services.layout import StorageLayout
from mascote.services.quota import QuotaCycleManager, cycle_key_for, reconcile

logger = structlog.get_logger(__name__)


def base_order_id(moment: datetime) -> str:
    """Order id derived from the creation timestamp, to the second"""
    return moment.strftime("%Y%m%d_%H%M%S")


class _ProfileUpdate:
    """Replaces team profile images with the ability to put the old ones back"""

    def __init__(self, team_dir: Path):
        self.team_dir = team_dir
        self._staged: List[Tuple[Path, Path]] = []
        self._backups: List[Tuple[Path, Optional[Path]]] = []

    def stage(self, asset: Optional[UploadedAsset], name: str) -> None:
        if asset is None:
            return
        ensure_dir(self.team_dir)
        target = self.team_dir / name
        tmp = self.team_dir / f".{name}.{uuid.uuid4().hex}.tmp"
        shutil.copyfile(asset.path, tmp)
        self._staged.append((tmp, target))

    def will_have(self, name: str) -> bool:
        target = self.team_dir / name
        return target.exists() or any(staged_target == target for _, staged_target in self._staged)

    def apply(self) -> None:
        for tmp, target in self._staged:
            backup = None
            if target.exists():
                backup = self.team_dir / f".{target.name}.{uuid.uuid4().hex}.bak"
                os.replace(target, backup)
            self._backups.append((target, backup))
            os.replace(tmp, target)

    def rollback(self) -> None:
        for target, backup in reversed(self._backups):
            if backup is not None:
                os.replace(backup, target)
            else:
                target.unlink(missing_ok=True)
        self._backups = []
        self.discard()

    def discard(self) -> None:
        for tmp, _ in self._staged:
            tmp.unlink(missing_ok=True)
        for _, backup in self._backups:
            if backup is not None:
                backup.unlink(missing_ok=True)


class OrderLifecycleManager:
    """Creates orders under quota and moves them through their statuses"""

    def __init__(
        self,
        clients: ClientRecordStore,
        cycles: QuotaCycleManager,
        storage: StorageLayout,
        max_sponsors: int = 20,
    ):
        self.clients = clients
        self.cycles = cycles
        self.storage = storage
        self.max_sponsors = max_sponsors

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_order(self, client_id: str, fields: OrderFields, assets: OrderAssets) -> str:
        """Create an order and consume one unit of the client's quota"""
        team_dir = self.storage.team_dir(client_id)

        with self.clients.lock(client_id):
            client = self.clients.get(client_id)
            if not client.active:
                raise ClientInactive()

            now = self.cycles.now()
            cycle_key = cycle_key_for(now)
            if reconcile(client, cycle_key):
                logger.info("Quota cycle reset", client_id=client_id, cycle_key=cycle_key)

            if not client.has_capacity():
                logger.info(
                    "Order refused, quota exhausted",
                    client_id=client_id,
                    usage_count=client.usage_count,
                    plan_quota=client.plan_quota,
                )
                raise QuotaExceeded(
                    f"Plan allows {client.plan_quota} orders per month, {client.usage_count} used"
                )

            missing = fields.missing()
            if missing:
                raise InvalidOrder(f"Missing required fields: {', '.join(missing)}")
            if len(assets.sponsors) > self.max_sponsors:
                raise InvalidOrder(f"At most {self.max_sponsors} sponsor images are accepted")

            cycle_dir = self.storage.cycle_dir(client_id, cycle_key)
            profile = _ProfileUpdate(team_dir)
            staging: Optional[Path] = None
            published: Optional[Path] = None
            try:
                ensure_dir(cycle_dir)
                staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=cycle_dir))
                order_id = self._next_order_id(cycle_dir, now)

                profile.stage(assets.team_shield, layout.PROFILE_SHIELD)
                profile.stage(assets.mascot, layout.PROFILE_MASCOT)

                record = OrderRecord(
                    id=order_id,
                    client_id=client_id,
                    cycle_key=cycle_key,
                    uses_team_shield=profile.will_have(layout.PROFILE_SHIELD),
                    uses_team_mascot=profile.will_have(layout.PROFILE_MASCOT),
                    sponsor_count=len(assets.sponsors),
                    status=OrderStatus.NEW,
                    created_at=now,
                    **fields.cleaned(),
                )
                self._write_order_files(staging, record, assets)

                published = cycle_dir / order_id
                os.rename(staging, published)
                staging = None

                profile.apply()

                client.usage_count += 1
                self.clients.put(client_id, client)
            except OSError as e:
                self._rollback(staging, published, profile)
                logger.error("Order creation failed", client_id=client_id, error=str(e))
                raise StorageError(f"Could not store order: {e}") from e
            except BaseException:
                self._rollback(staging, published, profile)
                raise

            profile.discard()

        logger.info(
            f"Order created: {order_id}",
            client_id=client_id,
            cycle_key=cycle_key,
            usage_count=client.usage_count,
            sponsors=record.sponsor_count,
        )
        return order_id

    def _next_order_id(self, cycle_dir: Path, now: datetime) -> str:
        """First free timestamp id; caller holds the client lock"""
        base = base_order_id(now)
        candidate = base
        suffix = 1
        while (cycle_dir / candidate).exists():
            suffix += 1
            candidate = f"{base}-{suffix}"
        return candidate

    def _write_order_files(self, order_dir: Path, record: OrderRecord, assets: OrderAssets) -> None:
        sponsors_dir = ensure_dir(order_dir / layout.SPONSORS_DIR)
        for position, sponsor in enumerate(assets.sponsors, start=1):
            shutil.copyfile(sponsor.path, sponsors_dir / layout.sponsor_filename(position))

        named = (
            (assets.team_shield, layout.TEAM_SHIELD),
            (assets.opponent_shield, layout.OPPONENT_SHIELD),
            (assets.mascot, layout.MASCOT),
        )
        for asset, name in named:
            if asset is not None:
                shutil.copyfile(asset.path, order_dir / name)

        atomic_write_json(order_dir / layout.ORDER_RECORD, record.model_dump(mode="json"))
        atomic_write_text(order_dir / layout.STATUS_MARKER, record.status.value)

    def _rollback(self, staging: Optional[Path], published: Optional[Path], profile: _ProfileUpdate) -> None:
        for path in (staging, published):
            if path is not None and path.exists():
                shutil.rmtree(path, ignore_errors=True)
        try:
            profile.rollback()
        except OSError as e:
            logger.error("Team profile rollback failed", team_dir=str(profile.team_dir), error=str(e))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def advance_status(self, client_id: str, order_id: str, new_status: str) -> OrderRecord:
        """Set the order's status; any enumerated status is accepted from any other"""
        order_dir = self.storage.order_dir(client_id, self.cycles.current_cycle_key(), order_id)

        target = OrderStatus.parse(new_status)
        if target is None:
            raise InvalidStatus(f"Unknown status: {new_status!r}")

        with self.storage.lock_order(order_dir):
            record = self._load_record(order_dir)
            previous = record.status
            previous_payload = record.model_dump(mode="json")
            record.transition_to(target, self.cycles.now())
            try:
                atomic_write_json(order_dir / layout.ORDER_RECORD, record.model_dump(mode="json"))
            except OSError as e:
                logger.error("Status write failed", order_id=order_id, error=str(e))
                raise StorageError(f"Could not update order status: {e}") from e
            try:
                atomic_write_text(order_dir / layout.STATUS_MARKER, target.value)
            except OSError as e:
                logger.error("Status marker write failed", order_id=order_id, error=str(e))
                self._restore_record(order_dir, previous_payload)
                raise StorageError(f"Could not update order status: {e}") from e

        logger.info(
            f"Order {order_id} status {previous.value} -> {target.value}",
            client_id=client_id,
        )
        return record

    def get_order(self, client_id: str, order_id: str) -> OrderRecord:
        """Load an order of the current cycle, checking record and marker agree"""
        order_dir = self.storage.order_dir(client_id, self.cycles.current_cycle_key(), order_id)
        with self.storage.lock_order(order_dir):
            record = self._load_record(order_dir)
            marker = read_status_marker(order_dir)
        if marker != record.status:
            logger.error(
                "Order status marker disagrees with record",
                order_id=order_id,
                marker=marker.value if marker else None,
                record=record.status.value,
            )
            raise StorageError(f"Order {order_id} has inconsistent status")
        return record

    def _restore_record(self, order_dir: Path, payload: dict) -> None:
        """Put back the record matching the unchanged status marker"""
        try:
            atomic_write_json(order_dir / layout.ORDER_RECORD, payload)
        except OSError as e:
            logger.error("Order record restore failed", order_dir=str(order_dir), error=str(e))

    def _load_record(self, order_dir: Path) -> OrderRecord:
        path = order_dir / layout.ORDER_RECORD
        if not path.exists():
            raise OrderNotFound()
        try:
            return OrderRecord.model_validate(read_json(path))
        except ValueError as e:
            raise StorageError(f"Corrupt order record: {e}") from e


def read_status_marker(order_dir: Path) -> Optional[OrderStatus]:
    """Current status from status.txt, None when absent or unrecognized"""
    try:
        raw = (order_dir / layout.STATUS_MARKER).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StorageError(f"Cannot read status marker: {e}") from e
    return OrderStatus.parse(raw)
