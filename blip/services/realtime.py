from __future__ import annotations

from typing import Any, Dict, Protocol

import httpx
from loguru import logger

from blip.core import config

# Events published on a user's channel
NEW_MESSAGE = "new_message"
MATCH_FOUND = "match_found"
REVEAL_CREATED = "reveal_created"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


class Publisher(Protocol):
    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None: ...


class LoggingPublisher:
    """Used when no realtime backend is configured."""

    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        logger.debug(f"[realtime] (not configured) {event} -> {channel}")


class SupabaseBroadcastPublisher:
    """
    Best-effort broadcast through the Supabase Realtime REST API.

    Delivery is at-most-once: transport errors are logged and dropped.
    """

    def __init__(self, supabase_url: str, service_key: str, timeout: float = 5.0):
        self.url = f"{supabase_url.rstrip('/')}/realtime/v1/api/broadcast"
        self.headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self.timeout = timeout

    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        body = {"messages": [{"topic": channel, "event": event, "payload": payload}]}
        try:
            resp = httpx.post(self.url, json=body, headers=self.headers, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.warning(f"[realtime] {event} -> {channel} failed: {exc}")
            return

        if resp.status_code >= 400:
            logger.warning(f"[realtime] {event} -> {channel} rejected: HTTP {resp.status_code}")
            return

        logger.debug(f"[realtime] {event} -> {channel}")


_PUBLISHER: Publisher | None = None


def get_publisher() -> Publisher:
    global _PUBLISHER
    if _PUBLISHER is not None:
        return _PUBLISHER

    if config.SUPABASE_URL and config.SUPABASE_SERVICE_ROLE_KEY:
        _PUBLISHER = SupabaseBroadcastPublisher(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
    else:
        _PUBLISHER = LoggingPublisher()
    return _PUBLISHER
