"""
Unit tests for the order lifecycle manager
"""

import json

import pytest

from mascote.core.errors import (
    ClientInactive, ClientNotFound, InvalidOrder, InvalidStatus, OrderNotFound, QuotaExceeded,
    StorageError,
)
from mascote.models.order import OrderStatus
from mascote.schemas.order import OrderAssets, OrderFields
from mascote.services import orders as orders_module
from tests.conftest import CLIENT_ID


def _order_dir(services, order_id, cycle_key="2024-06", client_id=CLIENT_ID):
    return services.settings.orders_dir / client_id / cycle_key / order_id


class TestCreateOrder:
    """Order creation under quota"""

    def test_stale_cycle_is_reset_then_consumed(self, services, make_client, order_fields, no_assets):
        """plan 2, used 0 in 2024-05, now 2024-06"""
        make_client(plan_quota=2, usage_count=0, cycle_key="2024-05")

        order_id = services.orders.create_order(CLIENT_ID, order_fields, no_assets)

        client = services.clients.get(CLIENT_ID)
        assert order_id == "20240615_103000"
        assert client.cycle_key == "2024-06"
        assert client.usage_count == 1

    def test_stale_cycle_grants_fresh_capacity(self, services, make_client, order_fields, no_assets):
        make_client(plan_quota=2, usage_count=2, cycle_key="2024-05")

        services.orders.create_order(CLIENT_ID, order_fields, no_assets)

        assert services.clients.get(CLIENT_ID).usage_count == 1

    def test_quota_exhausted(self, services, make_client, order_fields, no_assets):
        make_client(plan_quota=2, usage_count=2, cycle_key="2024-06")

        with pytest.raises(QuotaExceeded):
            services.orders.create_order(CLIENT_ID, order_fields, no_assets)

        assert services.clients.get(CLIENT_ID).usage_count == 2
        assert not (services.settings.orders_dir / CLIENT_ID / "2024-06").exists()

    def test_usage_counts_every_success(self, services, make_client, order_fields, no_assets, clock):
        make_client(plan_quota=3, usage_count=0)

        for _ in range(3):
            services.orders.create_order(CLIENT_ID, order_fields, no_assets)
            clock.advance(seconds=1)

        assert services.clients.get(CLIENT_ID).usage_count == 3
        with pytest.raises(QuotaExceeded):
            services.orders.create_order(CLIENT_ID, order_fields, no_assets)
        assert services.clients.get(CLIENT_ID).usage_count == 3

    def test_unknown_client(self, services, order_fields, no_assets):
        with pytest.raises(ClientNotFound):
            services.orders.create_order("5500000000000", order_fields, no_assets)

    def test_path_like_client_id_is_rejected(self, services, order_fields, no_assets):
        with pytest.raises(ClientNotFound):
            services.orders.create_order("../etc", order_fields, no_assets)

    def test_inactive_client(self, services, make_client, order_fields, no_assets):
        make_client(active=False)

        with pytest.raises(ClientInactive):
            services.orders.create_order(CLIENT_ID, order_fields, no_assets)

        assert services.clients.get(CLIENT_ID).usage_count == 0

    def test_writes_record_marker_and_assets(self, services, make_client, order_fields, blob):
        make_client()
        assets = OrderAssets(
            team_shield=blob("home.png"),
            opponent_shield=blob("away.png"),
            mascot=blob("leao.png"),
            sponsors=[blob("s1.png"), blob("s2.png"), blob("s3.png")],
        )

        order_id = services.orders.create_order(CLIENT_ID, order_fields, assets)

        order_dir = _order_dir(services, order_id)
        record = json.loads((order_dir / "order.json").read_text())
        assert record["id"] == order_id
        assert record["client_id"] == CLIENT_ID
        assert record["cycle_key"] == "2024-06"
        assert record["round"] == "Rodada 7"
        assert record["venue"] == "Estadio Municipal"
        assert record["mascot_kind"] == "leao"
        assert record["sponsor_count"] == 3
        assert record["status"] == "new"
        assert record["uses_team_shield"] is True
        assert record["uses_team_mascot"] is True
        assert (order_dir / "status.txt").read_text() == "new"

        assert (order_dir / "team_shield.png").read_bytes() == b"image:home.png"
        assert (order_dir / "opponent_shield.png").read_bytes() == b"image:away.png"
        assert (order_dir / "mascot.png").read_bytes() == b"image:leao.png"
        sponsors = sorted(p.name for p in (order_dir / "sponsors").iterdir())
        assert sponsors == ["sponsor01.png", "sponsor02.png", "sponsor03.png"]
        assert (order_dir / "sponsors" / "sponsor02.png").read_bytes() == b"image:s2.png"

    def test_updates_team_asset_profile(self, services, make_client, order_fields, blob):
        make_client()
        assets = OrderAssets(team_shield=blob("home.png"), mascot=blob("leao.png"))

        services.orders.create_order(CLIENT_ID, order_fields, assets)

        team_dir = services.settings.teams_dir / CLIENT_ID
        assert (team_dir / "shield.png").read_bytes() == b"image:home.png"
        assert (team_dir / "mascot.png").read_bytes() == b"image:leao.png"
        assert sorted(p.name for p in team_dir.iterdir()) == ["mascot.png", "shield.png"]

    def test_profile_mascot_is_reused_by_later_orders(self, services, make_client, order_fields, blob, clock):
        make_client()
        services.orders.create_order(CLIENT_ID, order_fields, OrderAssets(mascot=blob("leao.png")))
        clock.advance(seconds=5)

        order_id = services.orders.create_order(CLIENT_ID, order_fields, OrderAssets())

        record = services.orders.get_order(CLIENT_ID, order_id)
        assert record.uses_team_mascot is True
        assert record.uses_team_shield is False

    def test_caller_blobs_are_left_in_place(self, services, make_client, order_fields, blob):
        make_client()
        shield = blob("home.png")

        services.orders.create_order(CLIENT_ID, order_fields, OrderAssets(team_shield=shield))

        assert shield.path.exists()

    def test_same_second_orders_get_suffixed_ids(self, services, make_client, order_fields, no_assets):
        make_client(plan_quota=5)

        ids = [services.orders.create_order(CLIENT_ID, order_fields, no_assets) for _ in range(3)]

        assert ids == ["20240615_103000", "20240615_103000-2", "20240615_103000-3"]


class TestNoPartialCommit:
    """Refused orders leave no trace"""

    @pytest.mark.parametrize("missing", ["round", "date", "time", "venue"])
    def test_missing_required_field(self, services, make_client, order_fields, blob, missing):
        make_client(plan_quota=2, usage_count=1)
        fields = order_fields.model_copy(update={missing: "   "})
        assets = OrderAssets(team_shield=blob("home.png"), sponsors=[blob("s1.png")])

        with pytest.raises(InvalidOrder):
            services.orders.create_order(CLIENT_ID, fields, assets)

        assert services.clients.get(CLIENT_ID).usage_count == 1
        assert not (services.settings.orders_dir / CLIENT_ID).exists()
        assert not (services.settings.teams_dir / CLIENT_ID / "shield.png").exists()

    def test_too_many_sponsors(self, services, make_client, order_fields, blob):
        make_client()
        assets = OrderAssets(sponsors=[blob(f"s{i}.png") for i in range(6)])

        with pytest.raises(InvalidOrder):
            services.orders.create_order(CLIENT_ID, order_fields, assets)

        assert services.clients.get(CLIENT_ID).usage_count == 0

    def test_storage_failure_rolls_back(self, services, make_client, order_fields, blob, monkeypatch):
        make_client()
        team_dir = services.settings.teams_dir / CLIENT_ID
        team_dir.mkdir(parents=True)
        (team_dir / "shield.png").write_bytes(b"old shield")

        def broken_put(client_id, client):
            raise StorageError("disk full")

        monkeypatch.setattr(services.clients, "put", broken_put)

        with pytest.raises(StorageError):
            services.orders.create_order(
                CLIENT_ID, order_fields, OrderAssets(team_shield=blob("home.png"), mascot=blob("m.png"))
            )

        monkeypatch.undo()
        cycle_dir = services.settings.orders_dir / CLIENT_ID / "2024-06"
        assert list(cycle_dir.iterdir()) == []
        assert (team_dir / "shield.png").read_bytes() == b"old shield"
        assert sorted(p.name for p in team_dir.iterdir()) == ["shield.png"]
        assert services.clients.get(CLIENT_ID).usage_count == 0

    def test_unreadable_source_blob_is_storage_error(self, services, make_client, order_fields, blob):
        make_client()
        sponsor = blob("s1.png")
        sponsor.path.unlink()

        with pytest.raises(StorageError):
            services.orders.create_order(CLIENT_ID, order_fields, OrderAssets(sponsors=[sponsor]))

        cycle_dir = services.settings.orders_dir / CLIENT_ID / "2024-06"
        assert list(cycle_dir.iterdir()) == []
        assert services.clients.get(CLIENT_ID).usage_count == 0


class TestAdvanceStatus:
    """Permissive status state machine"""

    @pytest.fixture
    def order_id(self, services, make_client, order_fields, no_assets):
        make_client()
        return services.orders.create_order(CLIENT_ID, order_fields, no_assets)

    def test_new_to_in_production_to_ready(self, services, order_id):
        services.orders.advance_status(CLIENT_ID, order_id, "in_production")
        record = services.orders.advance_status(CLIENT_ID, order_id, "ready")

        order_dir = _order_dir(services, order_id)
        assert record.status == OrderStatus.READY
        assert (order_dir / "status.txt").read_text() == "ready"
        assert json.loads((order_dir / "order.json").read_text())["status"] == "ready"

    def test_skipping_in_production_is_allowed(self, services, order_id):
        record = services.orders.advance_status(CLIENT_ID, order_id, "ready")
        assert record.status == OrderStatus.READY

    def test_going_back_is_allowed(self, services, order_id):
        services.orders.advance_status(CLIENT_ID, order_id, "ready")
        record = services.orders.advance_status(CLIENT_ID, order_id, "new")
        assert record.status == OrderStatus.NEW

    def test_idempotent(self, services, order_id):
        services.orders.advance_status(CLIENT_ID, order_id, "ready")
        order_dir = _order_dir(services, order_id)
        first = json.loads((order_dir / "order.json").read_text())

        services.orders.advance_status(CLIENT_ID, order_id, "ready")
        second = json.loads((order_dir / "order.json").read_text())

        assert (order_dir / "status.txt").read_text() == "ready"
        assert first["status"] == second["status"] == "ready"
        assert services.orders.get_order(CLIENT_ID, order_id).status == OrderStatus.READY

    def test_failed_marker_write_keeps_record_and_marker_in_step(self, services, order_id, monkeypatch):
        def broken_write(path, text):
            raise OSError("disk full")

        monkeypatch.setattr(orders_module, "atomic_write_text", broken_write)

        with pytest.raises(StorageError):
            services.orders.advance_status(CLIENT_ID, order_id, "ready")

        monkeypatch.undo()
        order_dir = _order_dir(services, order_id)
        assert (order_dir / "status.txt").read_text() == "new"
        assert json.loads((order_dir / "order.json").read_text())["status"] == "new"
        assert services.orders.get_order(CLIENT_ID, order_id).status == OrderStatus.NEW
        assert services.queries.list_orders(CLIENT_ID, "new") == [order_id]

    def test_unknown_status(self, services, order_id):
        with pytest.raises(InvalidStatus):
            services.orders.advance_status(CLIENT_ID, order_id, "shipped")

        assert (_order_dir(services, order_id) / "status.txt").read_text() == "new"

    def test_unknown_order(self, services, order_id):
        with pytest.raises(OrderNotFound):
            services.orders.advance_status(CLIENT_ID, "20240101_000000", "ready")

    def test_unknown_order_checked_before_status(self, services, order_id):
        with pytest.raises(OrderNotFound):
            services.orders.advance_status(CLIENT_ID, "20240101_000000", "shipped")

    def test_malformed_order_id(self, services, order_id):
        with pytest.raises(OrderNotFound):
            services.orders.advance_status(CLIENT_ID, "..", "ready")

    def test_previous_cycle_order_is_not_found(self, services, order_id, clock):
        clock.set(2024, 7, 1, 9, 0, 0)

        with pytest.raises(OrderNotFound):
            services.orders.advance_status(CLIENT_ID, order_id, "ready")

    def test_other_client_cannot_reach_order(self, services, order_id, make_client):
        make_client(client_id="5511888880000")

        with pytest.raises(OrderNotFound):
            services.orders.advance_status("5511888880000", order_id, "ready")


class TestGetOrder:

    def test_returns_record(self, services, make_client, order_fields, no_assets):
        make_client()
        order_id = services.orders.create_order(CLIENT_ID, order_fields, no_assets)

        record = services.orders.get_order(CLIENT_ID, order_id)

        assert record.id == order_id
        assert record.status == OrderStatus.NEW
        assert record.time == "16:00"

    def test_divergent_marker_is_reported(self, services, make_client, order_fields, no_assets):
        make_client()
        order_id = services.orders.create_order(CLIENT_ID, order_fields, no_assets)
        (_order_dir(services, order_id) / "status.txt").write_text("ready")

        with pytest.raises(StorageError):
            services.orders.get_order(CLIENT_ID, order_id)
