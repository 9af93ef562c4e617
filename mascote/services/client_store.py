"""
Client record store backed by a single JSON table

The table is read and written as a whole. Writers replace the file
atomically, so readers see either the old or the new table. Mutations go
through update(), which runs the read-modify-write of one client under that
client's lock and serializes the table write itself.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator
import threading

from pydantic import ValidationError
import structlog

from mascote.core.errors import ClientNotFound, StorageError
from mascote.core.storage import KeyedLock, atomic_write_json, ensure_dir, read_json
from mascote.models.client import Client

logger = structlog.get_logger(__name__)


class ClientRecordStore:
    """Whole-table persistence for Client records"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._client_locks = KeyedLock()
        self._table_lock = threading.Lock()

    def initialize(self) -> None:
        """Create an empty table when none exists yet"""
        ensure_dir(self.path.parent)
        if not self.path.exists():
            atomic_write_json(self.path, {})
            logger.info(f"Created empty client table at {self.path}")

    def load(self) -> Dict[str, Client]:
        """Load the full table, failing closed when it is unreadable"""
        raw = read_json(self.path)
        clients: Dict[str, Client] = {}
        for client_id, record in raw.items():
            try:
                clients[client_id] = Client.model_validate(record)
            except ValidationError as e:
                logger.error("Corrupt client record", client_id=client_id, error=str(e))
                raise StorageError(f"Corrupt record for client {client_id}") from e
        return clients

    def save(self, clients: Dict[str, Client]) -> None:
        """Persist the full table in one atomic replacement"""
        payload = {client_id: client.model_dump(mode="json") for client_id, client in clients.items()}
        try:
            atomic_write_json(self.path, payload)
        except OSError as e:
            logger.error("Client table write failed", error=str(e))
            raise StorageError(f"Cannot write client table: {e}") from e

    def get(self, client_id: str) -> Client:
        client = self.load().get(client_id)
        if client is None:
            raise ClientNotFound()
        return client

    @contextmanager
    def lock(self, client_id: str) -> Iterator[None]:
        """Critical section for a multi-step sequence on one client"""
        with self._client_locks.hold(client_id):
            yield

    def put(self, client_id: str, client: Client) -> None:
        """Replace one record; caller must hold the client's lock"""
        with self._table_lock:
            clients = self.load()
            clients[client_id] = client
            self.save(clients)

    def update(self, client_id: str, fn: Callable[[Client], Client | None]) -> Client:
        """Read-modify-write a single client atomically

        fn receives the current record and may mutate it in place or return a
        replacement. Raising from fn aborts without writing.
        """
        with self.lock(client_id):
            client = self.get(client_id)
            result = fn(client)
            if result is not None:
                client = result
            self.put(client_id, client)
            return client

    def provision(self, client_id: str, client: Client) -> None:
        """Insert or overwrite a client (administrative use)"""
        with self.lock(client_id):
            self.put(client_id, client)
