"""Proactive heartbeat checks with durable 24h deduplication."""

from .log import HeartbeatLog, HeartbeatRecord, content_hash
from .runner import HeartbeatOutcome, HeartbeatRunner, within_active_hours

__all__ = [
    "HeartbeatLog",
    "HeartbeatOutcome",
    "HeartbeatRecord",
    "HeartbeatRunner",
    "content_hash",
    "within_active_hours",
]
