"""Resident-side polling for pending visitor and parcel counts.

Each watcher is an independent task: it fetches the count once on start, then again
every ``interval`` seconds, and raises an alert whenever the count goes up compared
with its own previous observation. Visitor and parcel watchers share nothing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from ..constants import PENDING_POLL_INTERVAL_SECONDS, ROLE_RESIDENT
from .api import ApiClientError, VpmsClient

logger = logging.getLogger(__name__)

CountFetcher = Callable[[int], Awaitable[int]]
MessageBuilder = Callable[[int], str]
AlertHandler = Callable[[str, int], Any]


def _log_alert(message: str, count: int) -> None:
    logger.info("%s (pending: %s)", message, count)


def visitor_alert_message(added: int) -> str:
    return "New visitor awaiting approval"


def parcel_alert_message(added: int) -> str:
    return f"{added} new parcels pending" if added > 1 else "New parcel pending"


def should_watch(user: Optional[Mapping[str, Any]]) -> bool:
    return bool(user) and user.get("role") == ROLE_RESIDENT


class PendingCountWatcher:
    def __init__(
        self,
        name: str,
        resident_id: int,
        fetch_count: CountFetcher,
        message_for: MessageBuilder,
        *,
        interval: float = PENDING_POLL_INTERVAL_SECONDS,
        on_alert: Optional[AlertHandler] = None,
        alert_on_first: bool = False,
    ) -> None:
        self.name = name
        self.resident_id = resident_id
        self.interval = interval
        self.alert_on_first = alert_on_first
        self.previous_count: Optional[int] = None
        self._fetch_count = fetch_count
        self._message_for = message_for
        self._on_alert = on_alert or _log_alert
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"pending-watch-{self.name}")
        logger.debug("Started %s watcher for resident %s", self.name, self.resident_id)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Stopped %s watcher for resident %s", self.name, self.resident_id)

    async def tick(self) -> Optional[int]:
        """Fetch once and compare with the last observation. Returns the count, or None on failure."""
        try:
            count = await self._fetch_count(self.resident_id)
        except ApiClientError as exc:
            logger.warning("Error polling pending %s count: %s", self.name, exc)
            return None
        except Exception:
            logger.exception("Unexpected error polling pending %s count", self.name)
            return None
        self._observe(count)
        return count

    def _observe(self, count: int) -> None:
        previous = self.previous_count
        self.previous_count = count
        if previous is None:
            # First observation is the baseline.
            if self.alert_on_first and count > 0:
                self._alert(count, count)
            return
        if count > previous:
            self._alert(count, count - previous)

    def _alert(self, count: int, added: int) -> None:
        self._on_alert(self._message_for(added), count)

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)


def watch_visitors(
    client: VpmsClient,
    user: Mapping[str, Any],
    **options: Any,
) -> Optional[PendingCountWatcher]:
    if not should_watch(user):
        return None
    return PendingCountWatcher(
        "visitor",
        int(user["id"]),
        client.pending_visitor_count,
        visitor_alert_message,
        **options,
    )


def watch_parcels(
    client: VpmsClient,
    user: Mapping[str, Any],
    **options: Any,
) -> Optional[PendingCountWatcher]:
    if not should_watch(user):
        return None
    return PendingCountWatcher(
        "parcel",
        int(user["id"]),
        client.pending_parcel_count,
        parcel_alert_message,
        **options,
    )
