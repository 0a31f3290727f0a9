import os
import re
import threading
import time

_OBJECT_ID_RE = re.compile(r"[0-9a-fA-F]{24}")

_process_random = os.urandom(5)
_counter = int.from_bytes(os.urandom(3), "big")
_counter_lock = threading.Lock()


def new_object_id() -> str:
    """Return a fresh 24-hex-digit id: seconds timestamp, per-process random bytes, counter."""
    global _counter
    with _counter_lock:
        _counter = (_counter + 1) % 0xFFFFFF
        count = _counter
    raw = int(time.time()).to_bytes(4, "big") + _process_random + count.to_bytes(3, "big")
    return raw.hex()


def is_well_formed_id(value: object) -> bool:
    return isinstance(value, str) and _OBJECT_ID_RE.fullmatch(value) is not None
