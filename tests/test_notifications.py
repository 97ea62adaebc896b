"""Webhook delivery and message text."""
import asyncio
import logging

import aiohttp
import pytest

from services.notifications import (
    WebhookNotifier,
    game_created_message,
    proof_message,
    roll_messages,
)

WEBHOOK = "https://discord.com/api/webhooks/1/abc"


class FakeResponse:
    def __init__(self, status=204, text=""):
        self.status = status
        self._text = text

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; records posts or raises."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.posts = []
        self.timeout = None

    def __call__(self, *, timeout=None):
        self.timeout = timeout
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def post(self, url, json=None):
        if self.error is not None:
            raise self.error
        self.posts.append((url, json))
        return self.response


@pytest.mark.asyncio
async def test_send_posts_content_json():
    session = FakeSession()
    notifier = WebhookNotifier(WEBHOOK, timeout=2.5, session_factory=session)

    assert await notifier.send("hello") is True
    assert session.posts == [(WEBHOOK, {"content": "hello"})]
    assert session.timeout.total == 2.5


@pytest.mark.asyncio
async def test_per_request_url_overrides_default():
    session = FakeSession()
    notifier = WebhookNotifier(WEBHOOK, session_factory=session)
    other = "https://discord.com/api/webhooks/2/xyz"

    await notifier.send("hi", url=other)
    assert session.posts[0][0] == other


@pytest.mark.asyncio
async def test_no_url_skips_delivery():
    session = FakeSession()
    notifier = WebhookNotifier("", session_factory=session)
    assert await notifier.send("hello") is False
    assert session.posts == []


@pytest.mark.parametrize(
    "error",
    [
        aiohttp.ClientConnectionError("refused"),
        asyncio.TimeoutError(),
        RuntimeError("boom"),
    ],
)
@pytest.mark.asyncio
async def test_delivery_failures_are_logged_not_raised(error, caplog):
    notifier = WebhookNotifier(WEBHOOK, session_factory=FakeSession(error=error))
    with caplog.at_level(logging.WARNING, logger="services.notifications"):
        assert await notifier.send("hello") is False
    assert caplog.records


@pytest.mark.asyncio
async def test_rejected_status_counts_as_failure():
    session = FakeSession(response=FakeResponse(status=429, text="rate limited"))
    notifier = WebhookNotifier(WEBHOOK, session_factory=session)

    assert await notifier.send("hello") is False
    assert await notifier.send_all(["a", "b"]) == 0


@pytest.mark.asyncio
async def test_send_all_counts_deliveries():
    session = FakeSession()
    notifier = WebhookNotifier(WEBHOOK, session_factory=session)
    assert await notifier.send_all(["a", "b", "c"]) == 3
    assert [p[1]["content"] for p in session.posts] == ["a", "b", "c"]


def test_roll_messages():
    rolled = {
        "rollAllowed": True,
        "roll": 2,
        "from": 8,
        "to": 3,
        "jump": {"from": 10, "to": 3},
        "awaitingProof": True,
        "team": {"id": "team_1", "name": "Red", "position": 3},
    }
    messages = roll_messages(rolled)
    assert len(messages) == 3
    assert "rolled **2**" in messages[0]
    assert "10 → 3" in messages[1]
    assert "requires proof" in messages[2]

    assert roll_messages({"ok": True, "rollAllowed": False, "reason": "awaiting_proof"}) == []


def test_other_messages():
    created = game_created_message({
        "clanName": "Iron Foundry",
        "displayName": "Summer Bingo",
        "boardSize": 50,
        "startsAt": None,
        "endsAt": "2026-08-01T00:00:00.000Z",
    })
    assert "Summer Bingo" in created
    assert "ends 2026-08-01T00:00:00.000Z" in created

    proof = proof_message({
        "proof": {"rsn": "Zezima", "tileIndex": 4, "url": "https://cdn.example.com/p.png"},
        "team": {"name": "Red"},
    })
    assert "tile **4**" in proof
    assert proof.endswith("https://cdn.example.com/p.png")
