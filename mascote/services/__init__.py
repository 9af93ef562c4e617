"""
Service wiring

All components are built once from the Settings object and shared by the
request handlers.
"""

from typing import Optional

import structlog

from mascote.core.auth import TokenIssuer
from mascote.core.config import Settings
from mascote.core.storage import ensure_dir
from mascote.services.archive import ArchiveExporter
from mascote.services.client_store import ClientRecordStore
from mascote.services.layout import StorageLayout
from mascote.services.order_query import OrderQueryService
from mascote.services.orders import OrderLifecycleManager
from mascote.services.quota import Clock, QuotaCycleManager
from mascote.services.sessions import SessionGate

logger = structlog.get_logger(__name__)


class MascoteServices:
    """Container for the shared service instances"""

    def __init__(self, settings: Settings, clock: Optional[Clock] = None):
        self.settings = settings
        self.clients = ClientRecordStore(settings.clients_file)
        self.cycles = QuotaCycleManager(settings.CYCLE_TIMEZONE, clock=clock)
        self.storage = StorageLayout(settings.orders_dir, settings.teams_dir)
        self.tokens = TokenIssuer(settings)
        self.sessions = SessionGate(self.clients, self.cycles, self.tokens)
        self.orders = OrderLifecycleManager(
            self.clients,
            self.cycles,
            self.storage,
            max_sponsors=settings.MAX_SPONSOR_FILES,
        )
        self.queries = OrderQueryService(self.cycles, self.storage)
        self.archives = ArchiveExporter(
            self.cycles,
            self.storage,
            compression_level=settings.ARCHIVE_COMPRESSION_LEVEL,
            chunk_size=settings.ARCHIVE_CHUNK_SIZE,
        )

    def initialize(self) -> None:
        """Create the data directories and an empty client table if missing"""
        for path in (
            self.settings.DATA_DIR,
            self.settings.orders_dir,
            self.settings.teams_dir,
            self.settings.uploads_dir,
        ):
            ensure_dir(path)
        self.clients.initialize()
        logger.info(f"Data directory ready: {self.settings.DATA_DIR}")


def build_services(settings: Settings, clock: Optional[Clock] = None) -> MascoteServices:
    services = MascoteServices(settings, clock=clock)
    services.initialize()
    return services
