"""Risk Alert Bot models package."""
from .alerts import AlertRecord, NotifyRequest

__all__ = ["AlertRecord", "NotifyRequest"]
