"""Event broadcast collaborator.

Delivery is best-effort: failures are logged and never reach bracket logic.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

import config

logger = logging.getLogger("bracketeer.events")

MATCH_UPDATED = "match:updated"
BRACKET_CREATED = "bracket:created"
TOURNAMENT_STATUS = "tournament:status"


class EventBroadcaster(Protocol):
    async def publish(self, tournament_id: int, event: str, data: Dict[str, Any]) -> None: ...


class WebhookBroadcaster:
    """POST events as JSON to a configured URL."""

    def __init__(
        self,
        url: str,
        secret: str = "",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self._transport = transport

    async def publish(self, tournament_id: int, event: str, data: Dict[str, Any]) -> None:
        headers = {"Authorization": f"Bearer {self.secret}"} if self.secret else {}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            r = await client.post(
                self.url,
                json={"tournament_id": tournament_id, "event": event, "data": data},
                headers=headers,
            )
            r.raise_for_status()


def broadcaster_from_config() -> Optional[WebhookBroadcaster]:
    """Webhook broadcaster when EVENTS_WEBHOOK_URL is set, else None."""
    if not config.EVENTS_WEBHOOK_URL:
        return None
    return WebhookBroadcaster(
        config.EVENTS_WEBHOOK_URL,
        secret=config.EVENTS_WEBHOOK_SECRET,
        timeout=config.EVENTS_TIMEOUT,
    )


async def notify(
    events: Optional[EventBroadcaster], tournament_id: int, event: str, data: Dict[str, Any]
) -> None:
    """Publish if a broadcaster is configured. Errors are logged, not raised."""
    if events is None:
        return
    try:
        await events.publish(tournament_id, event, data)
    except Exception:
        logger.warning("Event %s for tournament %s not delivered", event, tournament_id, exc_info=True)
