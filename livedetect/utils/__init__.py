from livedetect.utils.timing import now_ms

__all__ = ["now_ms"]
