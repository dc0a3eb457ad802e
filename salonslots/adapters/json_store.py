"""
JSON file repository: the in-memory store persisted to a single file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import AsyncIterator, Iterator

from filelock import FileLock, Timeout

from ..domain.exceptions import StorageError
from .memory_store import InMemoryRepository
from .serialization import (
    appointment_from_dict,
    appointment_to_dict,
    closure_from_dict,
    closure_to_dict,
    config_from_dict,
    config_to_dict,
    service_from_dict,
    service_to_dict,
)

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10.0


class JsonFileRepository(InMemoryRepository):
    """
    Keeps every record in ``data_file`` and shares it safely between processes.

    Each write takes an exclusive file lock (``<data_file>.lock``), reloads
    the file, applies the change and writes the file back, so a write never
    drops records another process saved in the meantime. ``transaction``
    holds the same lock across a whole read-check-write sequence.

    Writes go to a temporary file that then replaces the original, so a
    crash mid-write leaves the previous state intact.
    """

    def __init__(self, data_file: Path, lock_timeout: float = LOCK_TIMEOUT_SECONDS):
        super().__init__()
        self.data_file = Path(data_file)
        self._lock = FileLock(
            str(self.data_file.with_name(f"{self.data_file.name}.lock")),
            timeout=lock_timeout,
        )
        self._load()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the inter-process lock; the lock is re-entrant."""
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire()
        except Timeout as exc:
            raise StorageError(f"Timed out waiting for the lock on {self.data_file}") from exc
        except OSError as exc:
            raise StorageError(f"Could not lock data file {self.data_file}: {exc}") from exc
        try:
            yield
        finally:
            self._lock.release()

    @contextmanager
    def _writing(self) -> Iterator[None]:
        with self._locked():
            self._load()
            yield
            try:
                self.save()
            except StorageError:
                # Drop the unsaved change so memory matches the file again.
                self._load()
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Hold the file lock and work on a fresh copy of the file.

        Acquiring the lock blocks the event loop for up to ``lock_timeout``
        seconds while another process holds it.
        """
        with self._locked():
            self._load()
            yield

    def _load(self) -> None:
        """Replace the in-memory records with the contents of the JSON file."""
        if not self.data_file.exists():
            logger.debug("Data file %s does not exist yet; starting empty", self.data_file)
            self._reset()
            return

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f) or {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read data file %s: %s", self.data_file, exc)
            raise StorageError(f"Could not read data file {self.data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise StorageError(f"Data file {self.data_file} must contain a JSON object")

        try:
            services = {
                item["id"]: service_from_dict(item) for item in data.get("services", [])
            }
            appointments = {
                item["id"]: appointment_from_dict(item) for item in data.get("appointments", [])
            }
            closures = {
                item["id"]: closure_from_dict(item) for item in data.get("closures", [])
            }
            raw_config = data.get("config")
            operating_config = config_from_dict(raw_config) if raw_config else None
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Invalid record in data file {self.data_file}: {exc}") from exc

        self.services = services
        self.appointments = appointments
        self.closures = closures
        self.operating_config = operating_config

    def _snapshot(self) -> dict:
        return {
            "config": config_to_dict(self.operating_config) if self.operating_config else None,
            "services": [service_to_dict(service) for service in self.services.values()],
            "appointments": [
                appointment_to_dict(appt)
                for appt in sorted(self.appointments.values(), key=lambda a: a.start_time)
            ],
            "closures": [closure_to_dict(closure) for closure in self.closures.values()],
        }

    def _reset(self) -> None:
        self.services = {}
        self.appointments = {}
        self.closures = {}
        self.operating_config = None

    def save(self) -> None:
        """Write the current state to disk atomically."""
        payload = self._snapshot()
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.data_file.name}.",
                dir=str(self.data_file.parent),
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.data_file)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as exc:
            logger.error("Could not save data file %s: %s", self.data_file, exc)
            raise StorageError(f"Could not save data file {self.data_file}: {exc}") from exc
