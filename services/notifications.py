"""Fire-and-forget chat notifications.

Messages go to a Discord-style webhook. Routes schedule `send` as a response
background task, so delivery never delays a response, and every delivery
failure is logged here instead of propagating.
"""
import asyncio
import logging
from typing import Callable, Optional

import aiohttp

import config

logger = logging.getLogger(__name__)


class WebhookNotifier:

    def __init__(
        self,
        default_url: str = "",
        *,
        timeout: float = 5.0,
        session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        self.default_url = (default_url or "").strip()
        self.timeout = timeout
        self._session_factory = session_factory

    async def send(self, content: str, *, url: Optional[str] = None) -> bool:
        """Post one message. Returns True when the webhook accepted it."""
        target = url or self.default_url
        if not target:
            logger.debug("No webhook URL set. Skipping notification.")
            return False

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with self._session_factory(timeout=timeout) as session:
                async with session.post(target, json={"content": content}) as resp:
                    if resp.status >= 400:
                        text = await resp.text()
                        logger.warning(f"Webhook rejected message: status={resp.status} body={text[:200]!r}")
                        return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning(f"Webhook request failed: {exc!r}")
            return False
        except Exception:
            # runs as a background task; nothing upstream could handle it
            logger.exception("Unexpected error while posting webhook")
            return False
        return True

    async def send_all(self, messages: list[str], *, url: Optional[str] = None) -> int:
        """Post messages in order; returns how many were delivered."""
        delivered = 0
        for m in messages:
            if await self.send(m, url=url):
                delivered += 1
        return delivered


# -------------------------------------------------
# Message text
# -------------------------------------------------

def game_created_message(result: dict) -> str:
    sched = ""
    if result.get("startsAt") or result.get("endsAt"):
        sched = f" (starts {result.get('startsAt') or 'now'} • ends {result.get('endsAt') or 'unset'})"
    return (
        f"🎲 **{result['clanName']}** Snakes & Ladders game created "
        f"(**{result['displayName']}**) (boardSize={result['boardSize']}){sched}"
    )


def team_created_message(team: dict) -> str:
    return f"🧑‍🤝‍🧑 Team created: **{team['name']}**"


def registered_message(team: dict, rsn: str) -> str:
    return f"✅ **{team['name']}** joined by **{rsn}**"


def roll_messages(result: dict) -> list[str]:
    """Messages for a successful roll; refusals produce none."""
    if not result.get("rollAllowed"):
        return []
    name = result["team"]["name"]
    out = [f"🎲 **{name}** rolled **{result['roll']}** → {result['from']} → {result['to']}"]
    if result.get("jump"):
        out.append(f"🪜🐍 **{name}** jump triggered: {result['jump']['from']} → {result['jump']['to']}")
    if result.get("awaitingProof"):
        out.append(f"🧩 **{name}** tile **{result['to']}** requires proof")
    return out


def proof_message(result: dict) -> str:
    proof = result["proof"]
    return (
        f"📸 Proof: **{proof['rsn']}** completed tile **{proof['tileIndex']}** "
        f"for **{result['team']['name']}**: {proof['url']}"
    )


def game_finished_message(game: dict) -> str:
    return f"🏁 **{game['displayName']}** has finished"


# -------------------------------------------------
# Process-wide notifier
# -------------------------------------------------

_notifier: Optional[WebhookNotifier] = None


def init_notifier(default_url: Optional[str] = None, *, timeout: Optional[float] = None) -> WebhookNotifier:
    global _notifier
    _notifier = WebhookNotifier(
        config.DISCORD_WEBHOOK_URL if default_url is None else default_url,
        timeout=config.NOTIFY_TIMEOUT_SECONDS if timeout is None else timeout,
    )
    return _notifier


def get_notifier() -> WebhookNotifier:
    """FastAPI dependency returning the notifier."""
    if _notifier is None:
        raise RuntimeError("Notifier not initialized; call init_notifier()")
    return _notifier


def close_notifier() -> None:
    global _notifier
    _notifier = None
