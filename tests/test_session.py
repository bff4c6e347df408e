# tests/test_session.py

from __future__ import annotations

import asyncio
import contextlib
from datetime import timedelta

import pytest

from dev_coach.checkins.checkin_store import CheckinStore
from dev_coach.config_store import ConfigStore
from dev_coach.core.session import CHECKIN_TITLE, FALLBACK_CHECKIN_TEXT, CoachSession
from dev_coach.tasks.task_store import TaskStore

from .fakes import FakeChatClient, FakeClock, FakeNotifier


@pytest.mark.asyncio
async def test_deliver_checkin_uses_ai_text_and_notifies(
    session: CoachSession,
    checkin_store: CheckinStore,
    task_store: TaskStore,
    chat_client: FakeChatClient,
    notifier: FakeNotifier,
    clock: FakeClock,
) -> None:
    task_store.add_task("Refactor parser")
    c = checkin_store.create(clock.now + timedelta(minutes=30), "standup prep")

    delivery = await session.deliver_checkin(c)

    assert delivery.text == "How is it going?"
    assert delivery.ai_error is None
    assert delivery.notified is True

    system = chat_client.calls[0][0]["content"]
    assert "scheduled check-in" in system
    assert "Refactor parser" in system

    title, body = notifier.sent[0]
    assert title == CHECKIN_TITLE
    assert "standup prep" in body
    assert "How is it going?" in body
    assert session.history[-1] == {"role": "assistant", "content": "How is it going?"}


@pytest.mark.asyncio
async def test_ai_failure_falls_back_but_still_notifies(
    session: CoachSession,
    checkin_store: CheckinStore,
    chat_client: FakeChatClient,
    notifier: FakeNotifier,
    clock: FakeClock,
) -> None:
    chat_client.next_error = "AI is rate-limited. Try again later."
    c = checkin_store.create(clock.now + timedelta(minutes=5))

    delivery = await session.deliver_checkin(c)

    assert delivery.text == FALLBACK_CHECKIN_TEXT
    assert delivery.ai_error == "AI is rate-limited. Try again later."
    assert len(notifier.sent) == 1
    assert FALLBACK_CHECKIN_TEXT in notifier.sent[0][1]
    assert session.history == []


@pytest.mark.asyncio
async def test_notifications_can_be_switched_off_in_config(
    session: CoachSession,
    config_store: ConfigStore,
    checkin_store: CheckinStore,
    notifier: FakeNotifier,
    clock: FakeClock,
) -> None:
    config_store.set("notifications", "off")
    c = checkin_store.create(clock.now + timedelta(minutes=5))

    delivery = await session.deliver_checkin(c)

    assert delivery.notified is False
    assert delivery.notify_error == "notifications disabled"
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_handed_off_checkins_are_delivered_by_worker(
    session: CoachSession,
    checkin_store: CheckinStore,
    notifier: FakeNotifier,
    clock: FakeClock,
) -> None:
    emitted: list[str] = []
    session.set_emitter(emitted.append)
    c = checkin_store.create(clock.now + timedelta(minutes=5), "water")

    worker = asyncio.create_task(session.run())
    try:
        session.handle_checkin(c)
        await session.wait_idle()
    finally:
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker

    assert len(notifier.sent) == 1
    assert emitted and emitted[0].startswith("[CHECK-IN] Check-in for")


def test_chat_with_ai_records_history(session: CoachSession, chat_client: FakeChatClient) -> None:
    reply, err = session.chat_with_ai("I am stuck on tests")
    assert (reply, err) == ("How is it going?", None)
    assert [m["role"] for m in session.history] == ["user", "assistant"]

    system = chat_client.calls[0][0]["content"]
    assert "scheduled check-in" not in system


def test_chat_with_ai_reports_service_errors(session: CoachSession, chat_client: FakeChatClient) -> None:
    chat_client.next_error = "All AI models failed."
    reply, err = session.chat_with_ai("hello")
    assert reply is None
    assert err == "AI service error: All AI models failed."
    assert session.history == []

    assert session.chat_with_ai("   ") == (None, "Message is empty.")


def test_extra_prompt_from_config(session: CoachSession, config_store: ConfigStore) -> None:
    config_store.set("ai_prompt", "Answer like a pirate.")
    assert "Answer like a pirate." in session.build_system_prompt()


def test_history_is_capped(task_store, boundary) -> None:
    s = CoachSession(
        tasks=task_store,
        chat_client=FakeChatClient(),
        notifier=FakeNotifier(),
        boundary=boundary,
        history=[{"role": "user", "content": str(i)} for i in range(10)],
        max_history=4,
    )
    assert [m["content"] for m in s.history] == ["6", "7", "8", "9"]
    s.chat_with_ai("next")
    assert len(s.history) == 4
