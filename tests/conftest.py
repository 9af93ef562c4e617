"""
Test configuration for pytest
"""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient

from mascote.core.auth import hash_secret
from mascote.core.config import Settings
from mascote.main import create_app
from mascote.models.client import Client
from mascote.schemas.order import OrderAssets, OrderFields, UploadedAsset
from mascote.services import MascoteServices, build_services

TZ = ZoneInfo("America/Sao_Paulo")
CLIENT_ID = "5511999990000"
SECRET = "segredo-do-time"


class FixedClock:
    """Settable clock; each call returns the current value"""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, *args) -> None:
        self.moment = datetime(*args, tzinfo=TZ)

    def advance(self, **kwargs) -> None:
        self.moment = self.moment + timedelta(**kwargs)


@pytest.fixture(scope="session")
def credential_hash() -> str:
    """bcrypt is slow; hash the shared secret once"""
    return hash_secret(SECRET)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATA_DIR=tmp_path / "data",
        JWT_SECRET_KEY="test-jwt-secret",
        CYCLE_TIMEZONE="America/Sao_Paulo",
        MAX_SPONSOR_FILES=5,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 6, 15, 10, 30, 0, tzinfo=TZ))


@pytest.fixture
def services(settings: Settings, clock: FixedClock) -> MascoteServices:
    return build_services(settings, clock=clock)


@pytest.fixture
def make_client(services: MascoteServices, credential_hash: str):
    """Provision a client directly in the table"""
    def _make(
        client_id: str = CLIENT_ID,
        plan_quota: int = 2,
        usage_count: int = 0,
        cycle_key: str = "2024-06",
        active: bool = True,
        display_name: str = "EC Exemplo",
    ) -> Client:
        client = Client(
            credential_hash=credential_hash,
            display_name=display_name,
            plan_quota=plan_quota,
            active=active,
            cycle_key=cycle_key,
            usage_count=usage_count,
        )
        services.clients.provision(client_id, client)
        return client
    return _make


@pytest.fixture
def blob(tmp_path: Path):
    """Write a fake image blob and describe it as an upload"""
    blob_dir = tmp_path / "blobs"
    blob_dir.mkdir()

    def _blob(name: str, content: bytes | None = None) -> UploadedAsset:
        path = blob_dir / name
        path.write_bytes(content if content is not None else f"image:{name}".encode())
        return UploadedAsset(filename=name, path=path)
    return _blob


@pytest.fixture
def order_fields() -> OrderFields:
    return OrderFields(
        round="Rodada 7",
        date="2024-06-22",
        time="16:00",
        venue="Estadio Municipal",
        mascot_kind="leao",
    )


@pytest.fixture
def no_assets() -> OrderAssets:
    return OrderAssets()


@pytest.fixture
def app_client(settings: Settings, clock: FixedClock) -> Generator[TestClient, None, None]:
    app = create_app(settings, clock=clock)
    with TestClient(app) as client:
        yield client
