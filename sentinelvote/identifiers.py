# sentinelvote/identifiers.py

# Time-ordered UUIDv7 identifiers (RFC 9562): 48-bit unix milliseconds,
# version, 12-bit sequence, variant, 62 random bits.

import os
import threading
import time
import uuid

_lock = threading.Lock()
_last_ms = 0
_last_seq = 0


def uuid7() -> uuid.UUID:
    global _last_ms, _last_seq
    with _lock:
        ms = time.time_ns() // 1_000_000
        if ms > _last_ms:
            seq = int.from_bytes(os.urandom(2), "big") & 0x07FF
        else:
            # Same (or earlier) millisecond: keep ordering by bumping the sequence.
            ms = _last_ms
            seq = _last_seq + 1
            if seq > 0x0FFF:
                ms += 1
                seq = 0
        _last_ms, _last_seq = ms, seq

    rand_b = int.from_bytes(os.urandom(8), "big") & 0x3FFFFFFFFFFFFFFF
    value = ((ms & 0xFFFFFFFFFFFF) << 80) | (0x7 << 76) | (seq << 64) | (0b10 << 62) | rand_b
    return uuid.UUID(int=value)


def uuid7_str() -> str:
    return str(uuid7())
