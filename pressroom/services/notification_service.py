from __future__ import annotations

import hashlib
from typing import Any, Protocol

from pressroom.core.logger import get_logger
from pressroom.schemas.enums import NotificationKind

logger = get_logger(__name__)


class Broadcaster(Protocol):
    async def broadcast_to_thread(self, thread_id: str, event_type: str, data: dict) -> None:
        ...


def derive_idempotency_key(kind: NotificationKind, content: str) -> str:
    digest = hashlib.sha256(f"{kind.value}\n{content}".encode("utf-8")).hexdigest()
    return f"{kind.value}:{digest[:32]}"


class NotificationService:
    """Direct-message sink for a conversation thread.

    Each message carries an idempotency key that is appended to the thread's
    event log together with the chat message; a key that is already in the
    log is dropped.
    """

    def __init__(self, store, broadcaster: Broadcaster | None = None) -> None:
        self.store = store
        self.broadcaster = broadcaster

    async def add_direct_message(
        self,
        thread_id: str,
        content: str,
        *,
        kind: NotificationKind = NotificationKind.STATUS,
        idempotency_key: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> bool:
        key = idempotency_key or derive_idempotency_key(kind, content)
        body = f"{kind.prefix}{content}"
        message = await self.store.record_direct_message(
            thread_id,
            key,
            kind,
            body,
            role="assistant",
            meta={"kind": kind.value, "idempotencyKey": key, **(meta or {})},
        )
        if message is None:
            logger.debug("Suppressed duplicate notification thread=%s key=%s", thread_id, key)
            return False
        logger.info("Notification thread=%s kind=%s key=%s", thread_id, kind.value, key)

        if self.broadcaster is not None:
            await self.broadcaster.broadcast_to_thread(
                thread_id,
                "direct_message",
                {"id": message.id, "kind": kind.value, "content": body},
            )
        return True
