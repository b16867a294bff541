import pytest

from memvault.heartbeat import HeartbeatLog, HeartbeatRunner
from memvault.llm import FakeAgentClient
from memvault.memory import DistillationTrigger
from memvault.ticker import Ticker


@pytest.fixture
def trigger(temp_vault, conversations, store, embedder, clock):
    return DistillationTrigger(
        vault_root=temp_vault,
        conversations=conversations,
        store=store,
        agent=FakeAgentClient("summary of the chat"),
        embedder=embedder,
        threshold=3,
        clock=clock,
    )


def _say(conversations, n):
    for i in range(n):
        conversations.append("chat-1", "user", f"note {i}")


def test_checkpoint_carried_between_ticks(trigger, conversations):
    ticker = Ticker(scope="chat-1", trigger=trigger)

    first = ticker.tick()
    assert first.distill.status == "below_threshold"
    assert first.heartbeat is None
    assert ticker.checkpoint is None

    _say(conversations, 3)
    second = ticker.tick()
    assert second.distill.status == "distilled"
    assert ticker.checkpoint == second.distill.checkpoint

    assert ticker.tick().distill.status == "below_threshold"
    assert trigger.agent.calls == 1


def test_cold_start_resumes_from_recorded_checkpoint(trigger, conversations):
    _say(conversations, 3)
    Ticker(scope="chat-1", trigger=trigger).tick()

    restarted = Ticker(scope="chat-1", trigger=trigger)
    outcome = restarted.tick().distill

    assert outcome.status == "below_threshold"
    assert outcome.turns_considered == 0
    assert restarted.checkpoint is not None
    assert trigger.agent.calls == 1


def test_tick_runs_heartbeat(trigger, db, temp_vault, clock):
    (temp_vault / "heartbeat.md").write_text("- water the plants\n", encoding="utf-8")
    delivered = []
    heartbeat = HeartbeatRunner(
        vault_root=temp_vault,
        log=HeartbeatLog(db),
        agent=FakeAgentClient("Water the plants today"),
        deliver=delivered.append,
        clock=clock,
    )

    result = Ticker(scope="chat-1", trigger=trigger, heartbeat=heartbeat).tick()

    assert result.heartbeat.status == "delivered"
    assert delivered == ["Water the plants today"]
