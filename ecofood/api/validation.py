"""Input checks for scan requests: barcode sanitation/validation and a per-client rate limiter."""

import re
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

BARCODE_PATTERNS = {
    "UPC_A": re.compile(r"^\d{12}$"),
    "UPC_E": re.compile(r"^\d{8}$"),
    "EAN_13": re.compile(r"^\d{13}$"),
    "EAN_8": re.compile(r"^\d{8}$"),
    "CODE_128": re.compile(r"^[\x20-\x7e]+$"),
    "CODE_39": re.compile(r"^[A-Z0-9\-\.\s\$/\+%]+$"),
}

UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9\-\.\s\$/\+%]")


def sanitize_barcode(barcode: str) -> str:
    if not barcode or not isinstance(barcode, str):
        return ""
    return UNSAFE_CHARS_RE.sub("", barcode).strip()


def validate_barcode(barcode: str) -> bool:
    if not barcode or not isinstance(barcode, str):
        return False
    clean = barcode.strip()
    return any(pattern.match(clean) for pattern in BARCODE_PATTERNS.values())


class RateLimiter:
    """Sliding-window limiter: at most max_requests per window seconds per key."""

    def __init__(self, max_requests: int = 10, window: float = 60, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window = window
        self.clock = clock
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def is_allowed(self, key: str) -> bool:
        now = self.clock()
        with self._lock:
            self._prune(now)
            history = self._requests[key]
            if len(history) >= self.max_requests:
                return False
            history.append(now)
            return True

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._requests)

    def _prune(self, now: float) -> None:
        # drop timestamps outside the window, and keys left with none
        for key in list(self._requests):
            history = self._requests[key]
            while history and now - history[0] >= self.window:
                history.popleft()
            if not history:
                del self._requests[key]
