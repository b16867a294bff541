"""One heartbeat tick: review the vault checklist and maybe notify the user.

The scheduler lives outside this package; it calls ``HeartbeatRunner.tick``
on each firing. Delivery is a plain callable supplied by the chat transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Literal, Optional
from zoneinfo import ZoneInfo

from memvault.db import Clock, utc_now
from memvault.llm import AgentClient
from memvault.vault import read_vault_file

from .log import HeartbeatLog, content_hash

logger = logging.getLogger(__name__)

HEARTBEAT_OK = "HEARTBEAT_OK"

HEARTBEAT_PROMPT = """You are a proactive personal assistant. Below is a checklist of things to check.
Review each item and report only if there's something actionable or noteworthy.

Rules:
- If there is nothing to report, respond with exactly: HEARTBEAT_OK
- If there IS something to report, be concise (max 500 characters)
- Don't repeat yourself — only report new or changed information
- Use the current date/time to determine which checks apply (every/daily/weekly)
- Be helpful but not annoying — only message if it's worth interrupting the user

Current date/time: {now}

Checklist:
"""


@dataclass(frozen=True)
class HeartbeatOutcome:
    status: Literal["outside_hours", "no_checklist", "ok", "duplicate", "delivered", "failed"]
    content: Optional[str] = None
    error: Optional[str] = None


def within_active_hours(now_local: datetime, start: str, end: str) -> bool:
    """Inclusive HH:MM window; a start later than the end wraps past midnight."""
    current = now_local.strftime("%H:%M")
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


class HeartbeatRunner:
    def __init__(
        self,
        *,
        vault_root: Path,
        log: HeartbeatLog,
        agent: AgentClient,
        deliver: Callable[[str], None],
        checklist_file: str = "heartbeat.md",
        active_hours_start: str = "08:00",
        active_hours_end: str = "22:00",
        tz: Optional[ZoneInfo] = None,
        clock: Clock = utc_now,
    ):
        self.vault_root = vault_root
        self.log = log
        self.agent = agent
        self.deliver = deliver
        self.checklist_file = checklist_file
        self.active_hours_start = active_hours_start
        self.active_hours_end = active_hours_end
        self.tz = tz or ZoneInfo("UTC")
        self.clock = clock

    def tick(self) -> HeartbeatOutcome:
        """Evaluate the checklist once. Never raises."""
        now_local = self.clock().astimezone(self.tz)
        if not within_active_hours(now_local, self.active_hours_start, self.active_hours_end):
            logger.info("Outside active hours, skipping")
            return HeartbeatOutcome(status="outside_hours")

        try:
            checklist = read_vault_file(self.vault_root, self.checklist_file)
            if not checklist or not checklist.strip():
                logger.info(f"{self.checklist_file} is empty, skipping")
                return HeartbeatOutcome(status="no_checklist")

            logger.info("Running heartbeat check...")
            prompt = HEARTBEAT_PROMPT.format(now=now_local.strftime("%Y-%m-%d %H:%M %Z")) + checklist
            text = self.agent.complete(prompt)
            digest = content_hash(text)

            if HEARTBEAT_OK in text:
                logger.info("HEARTBEAT_OK, nothing to report")
                self.log.record(digest, text, delivered=False)
                return HeartbeatOutcome(status="ok", content=text)

            if self.log.is_duplicate(digest):
                logger.info("Duplicate response, skipping delivery")
                return HeartbeatOutcome(status="duplicate", content=text)

            self.deliver(text)
            self.log.record(digest, text, delivered=True)
            logger.info("Heartbeat message delivered")
            return HeartbeatOutcome(status="delivered", content=text)
        except Exception as e:
            logger.exception("Heartbeat tick failed")
            return HeartbeatOutcome(status="failed", error=str(e))
