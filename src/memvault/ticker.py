"""Scheduled tick: distillation check plus heartbeat, driven from outside."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .heartbeat import HeartbeatOutcome, HeartbeatRunner
from .memory import DistillationTrigger, DistillOutcome, derive_checkpoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    distill: DistillOutcome
    heartbeat: Optional[HeartbeatOutcome]


class Ticker:
    """Carries the distillation checkpoint from one tick to the next.

    On the first tick the checkpoint is read from the scope's recorded
    distillation checkpoint; afterwards it is whatever the last check returned.
    """

    def __init__(
        self,
        *,
        scope: str,
        trigger: DistillationTrigger,
        heartbeat: Optional[HeartbeatRunner] = None,
        checkpoint: Optional[str] = None,
    ):
        self.scope = scope
        self.trigger = trigger
        self.heartbeat = heartbeat
        self._checkpoint = checkpoint
        self._checkpoint_loaded = checkpoint is not None

    @property
    def checkpoint(self) -> Optional[str]:
        return self._checkpoint

    def tick(self) -> TickResult:
        if not self._checkpoint_loaded:
            self._checkpoint = derive_checkpoint(self.trigger.conversations, self.scope)
            self._checkpoint_loaded = True

        outcome = self.trigger.check(self.scope, self._checkpoint)
        self._checkpoint = outcome.checkpoint
        if outcome.status == "distilled":
            logger.info(f"Distilled {outcome.turns_considered} turns into {outcome.document}")

        hb = self.heartbeat.tick() if self.heartbeat is not None else None
        return TickResult(distill=outcome, heartbeat=hb)
