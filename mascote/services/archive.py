"""
Zip export of an order directory
"""

from pathlib import Path
from typing import IO, Iterator
import os
import tempfile
import zipfile

import structlog

from mascote.core.errors import StorageError
from mascote.services.layout import StorageLayout
from mascote.services.quota import QuotaCycleManager

logger = structlog.get_logger(__name__)


class ArchiveExporter:
    """Packages one order's files into a zip archive streamed in chunks"""

    def __init__(
        self,
        cycles: QuotaCycleManager,
        storage: StorageLayout,
        compression_level: int = 9,
        chunk_size: int = 64 * 1024,
    ):
        self.cycles = cycles
        self.storage = storage
        self.compression_level = compression_level
        self.chunk_size = chunk_size

    def archive_name(self, order_id: str) -> str:
        return f"{order_id}.zip"

    def export(self, client_id: str, order_id: str) -> Iterator[bytes]:
        """Build the archive now and return an iterator over its bytes

        Raises OrderNotFound before anything is streamed when the order does
        not exist in the current cycle.
        """
        order_dir = self.storage.order_dir(client_id, self.cycles.current_cycle_key(), order_id)
        spool = tempfile.SpooledTemporaryFile(max_size=8 * 1024 * 1024)
        try:
            with self.storage.lock_order(order_dir):
                self._write_archive(order_dir, spool)
        except OSError as e:
            spool.close()
            logger.error("Archive export failed", order_id=order_id, error=str(e))
            raise StorageError(f"Cannot package order: {e}") from e
        except BaseException:
            spool.close()
            raise

        logger.info(f"Exporting order archive {order_id}", client_id=client_id)
        spool.seek(0)
        return self._iter_chunks(spool)

    def _write_archive(self, order_dir: Path, target: IO[bytes]) -> None:
        with zipfile.ZipFile(
            target,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.compression_level,
        ) as archive:
            for root, dirs, files in os.walk(order_dir):
                dirs.sort()
                root_path = Path(root)
                for name in sorted(files):
                    path = root_path / name
                    archive.write(path, arcname=path.relative_to(order_dir).as_posix())

    def _iter_chunks(self, spool: IO[bytes]) -> Iterator[bytes]:
        try:
            while True:
                chunk = spool.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            spool.close()
