import threading
import uuid
from unittest.mock import MagicMock

import pytest
import redis

from hms_core.core.errors import LockTimeoutError
from hms_core.core.locks import InProcessDoctorLock, RedisDoctorLock


def test_in_process_lock_times_out_while_held():
    lock = InProcessDoctorLock(timeout=0.05)
    doctor_id = uuid.uuid4()
    held = threading.Event()
    release = threading.Event()

    def holder():
        with lock.hold(doctor_id):
            held.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    try:
        assert held.wait(5)
        with pytest.raises(LockTimeoutError):
            with lock.hold(doctor_id):
                pass
        # Other doctors are not blocked
        with lock.hold(uuid.uuid4()):
            pass
    finally:
        release.set()
        t.join()

    with lock.hold(doctor_id):
        pass
    # Timed-out waiters and finished holders leave nothing behind
    assert lock._locks == {}


def test_redis_lock_acquires_and_releases():
    client = MagicMock(spec=redis.Redis)
    redis_lock = client.lock.return_value
    redis_lock.acquire.return_value = True
    doctor_id = uuid.uuid4()

    with RedisDoctorLock(client, timeout=3.0, lease_seconds=30.0).hold(doctor_id):
        redis_lock.release.assert_not_called()

    client.lock.assert_called_once_with(f"doctor-lock:{doctor_id}", timeout=30.0, blocking_timeout=3.0)
    redis_lock.release.assert_called_once()


def test_redis_lock_timeout():
    client = MagicMock(spec=redis.Redis)
    client.lock.return_value.acquire.return_value = False

    with pytest.raises(LockTimeoutError):
        with RedisDoctorLock(client).hold(uuid.uuid4()):
            pass


def test_redis_lock_expired_lease_does_not_mask_the_block():
    client = MagicMock(spec=redis.Redis)
    redis_lock = client.lock.return_value
    redis_lock.acquire.return_value = True
    redis_lock.release.side_effect = redis.exceptions.LockError("not owned")

    with RedisDoctorLock(client).hold(uuid.uuid4()):
        pass


def test_in_process_lock_forgets_idle_doctors():
    lock = InProcessDoctorLock(timeout=1.0)
    doctor_ids = [uuid.uuid4() for _ in range(50)]

    with lock.hold(doctor_ids[0]):
        assert doctor_ids[0] in lock._locks

    for doctor_id in doctor_ids:
        with lock.hold(doctor_id):
            pass

    assert lock._locks == {}
