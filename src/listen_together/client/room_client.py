"""Realtime room client: feeds server syncs into a reconciler and reports track ends."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import socketio

from listen_together.client.reconciler import MediaElement, PlaybackReconciler, SyncOutcome
from listen_together.domain.shared.datetime_utils import Clock, now_ms
from listen_together.domain.shared.exceptions import DomainError
from listen_together.domain.sync.events import PlaybackSync
from listen_together.utils.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)

DEFAULT_REPORT_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, timeout=5.0)


class EventNotAcknowledgedError(DomainError):
    """The server did not confirm a client event."""

    def __init__(self, event_type: str, reason: str | None = None) -> None:
        self.event_type = event_type
        super().__init__(
            f"{event_type} was not acknowledged: {reason or 'no response'}",
            code="EVENT_NOT_ACKNOWLEDGED",
        )


class RoomClient:
    """Keeps a local :class:`MediaElement` in step with one room.

    Args:
        url: Server base URL.
        token: Bearer token sent in the socket.io auth payload.
        room_id: Room whose playback this client follows.
        media: Local audio output.
        reconciler: Reconciler to use; built from ``media`` when omitted.
        report_policy: Retry policy for trackEnded reports.
        poll_interval: Seconds between end-of-track polls.
        sio: socket.io client, injectable for tests.
    """

    def __init__(
        self,
        url: str,
        token: str,
        room_id: str,
        media: MediaElement,
        *,
        reconciler: PlaybackReconciler | None = None,
        report_policy: RetryPolicy = DEFAULT_REPORT_POLICY,
        poll_interval: float = 1.0,
        clock: Clock = now_ms,
        sio: socketio.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._room_id = room_id
        self._clock = clock
        self._report_policy = report_policy
        self._poll_interval = poll_interval

        self.reconciler = reconciler or PlaybackReconciler(media, clock=clock)
        self._sio = sio or socketio.AsyncClient()
        self._poller: asyncio.Task[None] | None = None
        self._last_sync_time: float | None = None

        self._sio.on("playbackSync", self.on_playback_sync)
        self._sio.on("roomJoined", self.on_room_joined)

    @property
    def room_id(self) -> str:
        return self._room_id

    async def connect(self) -> None:
        await self._sio.connect(self._url, auth={"token": self._token})
        self._poller = asyncio.create_task(self._watch_for_end())

    async def disconnect(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poller
            self._poller = None
        await self._sio.disconnect()

    async def on_playback_sync(self, data: PlaybackSync | dict[str, Any]) -> SyncOutcome:
        outcome = self.reconciler.apply(data)
        if outcome not in (SyncOutcome.DUPLICATE, SyncOutcome.STALE):
            self._last_sync_time = self._clock()
        return outcome

    async def on_room_joined(self, data: dict[str, Any]) -> SyncOutcome:
        # A room snapshot carries the same timeline fields as a sync.
        return await self.on_playback_sync(PlaybackSync.model_validate(data))

    async def request_sync(self) -> None:
        await self._sio.emit(
            "requestSync",
            {
                "roomId": self._room_id,
                "clientTime": self._clock(),
                "lastSyncTime": self._last_sync_time,
            },
        )

    async def heartbeat(self) -> dict[str, Any]:
        return await self._sio.call(
            "heartbeat", {"roomId": self._room_id, "clientTime": self._clock()}
        )

    async def report_track_ended(self, song_id: str) -> dict[str, Any]:
        """Report a finished track, retrying until the server acknowledges it."""
        payload = {
            "type": "trackEnded",
            "songId": song_id,
            "roomId": self._room_id,
            "timestamp": self._clock(),
        }

        async def send() -> dict[str, Any]:
            ack = await self._sio.call("clientEvent", payload)
            if not isinstance(ack, dict) or not ack.get("success"):
                reason = ack.get("error") if isinstance(ack, dict) else None
                raise EventNotAcknowledgedError("trackEnded", reason)
            return ack

        return await retry_async(send, self._report_policy, description="trackEnded report")

    async def poll_once(self) -> str | None:
        """Check for end of track once; report it if it just ended."""
        song_id = self.reconciler.check_for_end()
        if song_id is None:
            return None
        try:
            await self.report_track_ended(song_id)
        except Exception as e:
            logger.warning("Failed to report end of %s in room %s: %s", song_id, self._room_id, e)
            await self.request_sync()
        return song_id

    async def _watch_for_end(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self._poll_interval)
