import time


def now_ms() -> int:
    """Wall-clock time in integer milliseconds (same base as browser Date.now())."""
    return int(time.time() * 1000)
