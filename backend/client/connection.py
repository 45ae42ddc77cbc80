"""
Pileup client connection.

Responsibilities:
- Keep one WebSocket to the server, reconnecting after a fixed delay
- Mirror server state into ClientState
- Drive the PlaybackScheduler and WaterfallProducer while audio owner
- Draw remote waterfall frames while not audio owner
- Log the now-playing indicator, including its expiry after the hold

Sends are best-effort: when the socket is not open the message is
dropped and send() returns False.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Awaitable, Callable, Coroutine, Mapping, Sequence

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State as WsState

from client.config import ClientConfig
from client.state import ClientState
from constants import LOG_PAYLOAD_PREVIEW_CHARS, NOW_PLAYING_POLL_MS
from observability.logger import log_event
from playback.scheduler import PlaybackScheduler
from playback.tones import ToneSink
from protocol import messages as m
from spectral.capture import SampleSource, SpectrumAnalyser
from spectral.relay import WaterfallProducer
from spectral.waterfall import WaterfallImage
from store.state_dataclass import QueueEntry


MessageHook = Callable[["PileupClient", Mapping[str, Any]], Awaitable[None]]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class PileupClient:
    """
    One participant connection.

    Lifecycle:
    1. run() connects and processes messages until close()
    2. on_message (optional) sees every decoded server message after the
       mirror and playback/waterfall wiring have handled it
    3. close() stops playback and capture and ends run()
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        sink: ToneSink,
        capture: SampleSource | None = None,
        on_message: MessageHook | None = None,
        connect: Callable[..., Any] = ws_connect,
    ) -> None:
        self._config = config
        self._connect = connect
        self._on_message = on_message

        self.state = ClientState()
        self._ws: Any = None
        self._closing = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._now_playing_watch: asyncio.Task[Any] | None = None

        self.scheduler = PlaybackScheduler(
            sink=sink,
            get_backlog=lambda: self.state.backlog,
            get_config=lambda: self.state.config,
            is_audio_owner=lambda: self.state.is_audio_owner,
            report_played=self._report_played,
            on_now_playing=self._on_now_playing,
        )

        self.producer: WaterfallProducer | None = None
        if capture is not None:
            self.producer = WaterfallProducer(
                capture=capture,
                analyser=SpectrumAnalyser(),
                send=self.send,
                is_audio_owner=lambda: self.state.is_audio_owner,
            )

        self.remote_waterfall = WaterfallImage()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        ws = self._ws
        return ws is not None and ws.state is WsState.OPEN

    async def send(self, message: Mapping[str, Any]) -> bool:
        if not self.is_open:
            self._log("CLIENT_SEND_DROPPED", level="DEBUG", details={"type": message.get("type")})
            return False
        try:
            await self._ws.send(json.dumps(message))
        except ConnectionClosed:
            return False
        return True

    async def run(self) -> None:
        """Connect, receive and reconnect until close() is called."""
        while not self._closing:
            try:
                async with self._connect(self._config.server_url) as ws:
                    self._ws = ws
                    self._log("CLIENT_CONNECTED", details={"url": self._config.server_url})
                    async for raw in ws:
                        await self._handle_raw(raw)
            except (OSError, WebSocketException) as e:
                self._log("CLIENT_CONNECTION_LOST", level="WARNING", details={"error": repr(e)})
            finally:
                self._ws = None
                self._on_disconnected()

            if self._closing:
                break
            await asyncio.sleep(self._config.reconnect_delay_s)

    async def close(self) -> None:
        self._closing = True
        self.stop_playback()
        self.stop_waterfall()

        ws = self._ws
        if ws is not None:
            await ws.close()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Participant actions
    # ------------------------------------------------------------------

    async def add_callsign(self, callsign: str) -> bool:
        return await self.send(m.add_callsign(callsign))

    async def remove_callsign(self, entry_id: int) -> bool:
        return await self.send(m.remove_callsign(entry_id))

    async def clear_backlog(self) -> bool:
        return await self.send(m.clear_backlog())

    async def reorder_backlog(self, order: Sequence[int]) -> bool:
        return await self.send(m.reorder_backlog(order))

    async def update_config(self, partial: dict[str, Any]) -> bool:
        return await self.send(m.update_config(partial))

    async def claim_audio(self) -> bool:
        return await self.send(m.claim_audio())

    async def release_audio(self) -> bool:
        self.stop_playback()
        self.stop_waterfall()
        return await self.send(m.release_audio())

    async def play_next(self) -> bool:
        return await self.send(m.play_next())

    # ------------------------------------------------------------------
    # Owner-side features
    # ------------------------------------------------------------------

    def start_playback(self) -> bool:
        """Start continuous drain; False if not the audio owner."""
        if not self.state.is_audio_owner:
            return False
        self._spawn(self.scheduler.continuous_drain())
        return True

    def stop_playback(self) -> None:
        self.scheduler.stop()

    def start_waterfall(self) -> bool:
        if self.producer is None or not self.producer.start():
            return False
        self._spawn(self.producer.run())
        return True

    def stop_waterfall(self) -> None:
        if self.producer is not None:
            self.producer.stop()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _handle_raw(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            preview = raw[:LOG_PAYLOAD_PREVIEW_CHARS] if isinstance(raw, str) else "<binary>"
            self._log(
                "CLIENT_JSON_DECODE_ERROR",
                level="WARNING",
                details={"error": str(e), "raw_preview": preview},
            )
            return

        if not isinstance(message, dict):
            return

        await self.handle_message(message)

    async def handle_message(self, message: Mapping[str, Any]) -> None:
        kind = message.get("type")
        self.state.apply(message)

        if kind == m.STATE:
            self.scheduler.session_id = self.state.client_id
            if self.producer is not None:
                self.producer.session_id = self.state.client_id

        elif kind == m.PLAY_CALLSIGN:
            item = message.get("item")
            if self.state.is_audio_owner and isinstance(item, Mapping):
                self._spawn(self.scheduler.play_entry(QueueEntry.from_wire(item)))

        elif kind == m.WATERFALL_FRAME:
            bins = message.get("bins")
            if not self.state.is_audio_owner and isinstance(bins, list):
                self.remote_waterfall.push_column(bins)

        elif kind == m.AUDIO_CLAIM_RESULT and not message.get("success"):
            self._log("CLIENT_CLAIM_REJECTED", details={"message": self.state.last_claim_error})

        if self._on_message is not None:
            await self._on_message(self, message)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _report_played(self, entry_id: int) -> None:
        await self.send(m.callsign_played(entry_id))

    def _on_now_playing(self, entry: QueueEntry | None) -> None:
        self._log(
            "CLIENT_NOW_PLAYING",
            details={
                "entry_id": entry.id if entry is not None else None,
                "callsign": entry.callsign if entry is not None else None,
            },
        )
        if entry is not None and self._now_playing_watch is None:
            self._now_playing_watch = self._spawn(self._watch_now_playing())

    async def _watch_now_playing(self) -> None:
        """Re-read the indicator so the hold expiry is reported too."""
        try:
            while self.scheduler.now_playing is not None:
                await asyncio.sleep(NOW_PLAYING_POLL_MS / 1000)
        finally:
            self._now_playing_watch = None

    def _on_disconnected(self) -> None:
        self.state.disconnected()
        self._log("CLIENT_DISCONNECTED")

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _log(self, event_type: str, *, level: str = "INFO", details: dict | None = None) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "level": level,
            "event_type": event_type,
            "session_id": self.state.client_id,
            "details": details or {},
        })
