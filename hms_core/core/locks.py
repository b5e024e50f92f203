# hms_core/core/locks.py
"""
Per-doctor mutual exclusion for booking.

A booking (or a reschedule) holds the doctor's lock for the whole unit of
work, commit included, so the overlap read and the appointment insert of
two requests for the same doctor can never interleave.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import ContextManager, Iterator, Protocol
from uuid import UUID

import redis

from hms_core.core.errors import LockTimeoutError

logger = logging.getLogger(__name__)


class DoctorLock(Protocol):
    def hold(self, doctor_id: UUID) -> ContextManager[None]: ...


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class InProcessDoctorLock:
    """
    One ``threading.Lock`` per doctor id.

    Only serializes requests served by this process; use
    :class:`RedisDoctorLock` when running several workers.
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        # doctor id -> lock plus the number of holders and waiters using it
        self._locks: dict[UUID, _LockEntry] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, doctor_id: UUID) -> threading.Lock:
        with self._registry_lock:
            entry = self._locks.get(doctor_id)
            if entry is None:
                entry = self._locks[doctor_id] = _LockEntry()
            entry.users += 1
            return entry.lock

    def _checkin(self, doctor_id: UUID) -> None:
        with self._registry_lock:
            entry = self._locks[doctor_id]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[doctor_id]

    @contextmanager
    def hold(self, doctor_id: UUID) -> Iterator[None]:
        lock = self._checkout(doctor_id)
        try:
            if not lock.acquire(timeout=self.timeout):
                raise LockTimeoutError("Doctor is busy with another booking. Please retry.")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(doctor_id)


class RedisDoctorLock:
    """
    Distributed lock backed by ``redis.Redis.lock``.

    ``lease_seconds`` bounds how long a crashed holder can block a doctor.
    """

    def __init__(self, client: redis.Redis, timeout: float = 10.0, lease_seconds: float = 60.0):
        self.client = client
        self.timeout = timeout
        self.lease_seconds = lease_seconds

    @contextmanager
    def hold(self, doctor_id: UUID) -> Iterator[None]:
        lock = self.client.lock(
            f"doctor-lock:{doctor_id}",
            timeout=self.lease_seconds,
            blocking_timeout=self.timeout,
        )
        if not lock.acquire():
            raise LockTimeoutError("Doctor is busy with another booking. Please retry.")
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                # Lease expired before release; the next holder already owns it.
                logger.warning("Doctor lock lease expired before release doctor=%s", doctor_id)
