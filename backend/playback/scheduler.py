"""
Playback scheduler for the audio owner.

Responsibilities:
- Turn a queue entry into timed tone/silence elements on a ToneSink
- Continuously drain the shared backlog while enabled
- Report finished entries back to the server (callsignPlayed)
- Keep a "now playing" indicator for a short trailing period

Non-responsibilities:
- NO backlog mutation (the server is authoritative)
- NO transport handling (report_played is injected)

Cancellation is cooperative: the token and the owner check are consulted
before every tone and every gap. An element already handed to the sink
always completes. Every drain run and every single play gets its own
token, and at most one render is in progress at any time.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable, Sequence

from constants import EMPTY_BACKLOG_POLL_MS, NOW_PLAYING_HOLD_MS
from observability.logger import log_event
from observability.metrics import timed
from playback.cancellation import CancellationToken
from playback.enums import PlaybackState
from playback.morse import DAH, pattern_for, supported_characters
from playback.timing import MorseTimings
from playback.tones import Sleep, ToneSink, sleep_ms
from store.state_dataclass import QueueEntry, SessionConfig


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------

GetBacklog = Callable[[], Sequence[QueueEntry]]
GetConfig = Callable[[], SessionConfig]
IsAudioOwner = Callable[[], bool]
ReportPlayed = Callable[[int], Awaitable[None]]
NowPlayingListener = Callable[["QueueEntry | None"], None]
ClockMs = Callable[[], float]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _monotonic_ms() -> float:
    return time.monotonic_ns() / 1_000_000


class PlaybackScheduler:
    """
    Owner-side playback engine.

    Lifecycle:
    1. continuous_drain() runs until stop() or loss of ownership
    2. play_entry() renders one entry on demand (playCallsign)
    3. stop() prevents any new tone or gap from starting

    All collaborators are injected so the engine runs against fakes in
    tests and against sounddevice/websockets in the client.
    """

    def __init__(
        self,
        *,
        sink: ToneSink,
        get_backlog: GetBacklog,
        get_config: GetConfig,
        is_audio_owner: IsAudioOwner,
        report_played: ReportPlayed,
        sleep: Sleep = sleep_ms,
        clock_ms: ClockMs = _monotonic_ms,
        on_now_playing: NowPlayingListener | None = None,
        session_id: int | None = None,
    ) -> None:
        self._sink = sink
        self._get_backlog = get_backlog
        self._get_config = get_config
        self._is_audio_owner = is_audio_owner
        self._report_played = report_played
        self._sleep = sleep
        self._clock_ms = clock_ms
        self._on_now_playing = on_now_playing
        self.session_id = session_id

        # One token per drain run and one per render; never reset
        self._drain_token: CancellationToken | None = None
        self._render_token: CancellationToken | None = None
        self._enabled = False
        # Bumped by stop(); a drain loop exits once its generation is stale
        self._generation = 0
        self._rendering = False
        self._state = PlaybackState.IDLE

        # Reported as played, removal not yet reflected in the backlog
        self._reported: set[int] = set()

        self._now_playing: QueueEntry | None = None
        self._now_playing_until_ms: float | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_rendering(self) -> bool:
        return self._rendering

    @property
    def now_playing(self) -> QueueEntry | None:
        """
        Entry being announced, or the last one during its trailing hold.

        Cleared once the hold period after the render has elapsed.
        """
        if self._now_playing is None:
            return None
        if self._now_playing_until_ms is not None and self._clock_ms() >= self._now_playing_until_ms:
            self._set_now_playing(None)
        return self._now_playing

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Cancel playback at the next decision point and disable draining."""
        for token in (self._drain_token, self._render_token):
            if token is not None:
                token.cancel()
        self._enabled = False
        self._generation += 1
        self._log("PLAYBACK_STOP_REQUESTED", details={"state": self._state.value})

    async def play_entry(self, entry: QueueEntry) -> bool:
        """
        Render a single entry (server playCallsign).

        Ignored while another render is in progress or when this client
        is not the audio owner. Returns True if the entry completed.
        """
        if self.is_rendering or not self._is_audio_owner():
            self._log(
                "PLAYBACK_PLAY_IGNORED",
                details={
                    "entry_id": entry.id,
                    "reason": "busy" if self.is_rendering else "not_audio_owner",
                },
            )
            return False

        return await self.render_callsign(entry, CancellationToken())

    async def continuous_drain(self) -> None:
        """
        Drain the backlog until stopped or ownership is lost.

        The loop survives empty periods by polling, so entries added later
        are announced without restarting playback.
        """
        if self._enabled:
            self._log("PLAYBACK_DRAIN_ALREADY_RUNNING")
            return

        token = CancellationToken()
        self._drain_token = token
        self._enabled = True
        generation = self._generation
        self._log("PLAYBACK_DRAIN_STARTED")

        reason = "stopped"
        try:
            while self._generation == generation and not token.cancelled:
                if not self._is_audio_owner():
                    reason = "ownership_lost"
                    break

                pending = self._pending()
                # A single play or a stopped drain's last tone may still be running
                if not pending or self.is_rendering:
                    self._state = PlaybackState.POLLING_EMPTY
                    await self._sleep(EMPTY_BACKLOG_POLL_MS)
                    continue

                self._state = PlaybackState.RENDERING
                await self.render_callsign(pending[0], token)

                if self._interrupted(token):
                    continue

                if self._pending():
                    self._state = PlaybackState.WAITING_BETWEEN_ITEMS
                    await self._sleep(self._get_config().delay_between_items_ms)
        finally:
            # A newer drain may already own the flags after stop() + restart
            if self._generation == generation or not self._enabled:
                self._enabled = False
                self._state = PlaybackState.IDLE
            if self._drain_token is token:
                self._drain_token = None
            self._log("PLAYBACK_DRAIN_STOPPED", details={"reason": reason})

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render_character(
        self,
        char: str,
        timings: MorseTimings,
        config: SessionConfig,
        token: CancellationToken,
    ) -> bool:
        """
        Emit one character's symbols separated by intra-character gaps.

        Unsupported characters produce nothing and count as completed.
        Returns False if interrupted before the last symbol started.
        """
        pattern = pattern_for(char)
        if pattern is None:
            return True

        for index, symbol in enumerate(pattern):
            if index:
                if self._interrupted(token):
                    return False
                await self._sink.silence(timings.intra_char_gap_ms)

            if self._interrupted(token):
                return False

            if symbol == DAH:
                await self._sink.tone(config.dah_frequency_hz, timings.dah_ms)
            else:
                await self._sink.tone(config.dit_frequency_hz, timings.dit_ms)

        return True

    async def render_callsign(
        self,
        entry: QueueEntry,
        token: CancellationToken | None = None,
    ) -> bool:
        """
        Announce one entry; report it as played only on natural completion.

        Only one render runs at a time; a second call while one is in
        progress is refused. The render checks the token it was started
        with, so stop() followed by a fresh drain never revives it.

        Config is sampled once so a mid-callsign update never changes the
        speed or pitch of a partially sent callsign.
        """
        if self._rendering:
            self._log("PLAYBACK_RENDER_REFUSED", details={"entry_id": entry.id, "reason": "busy"})
            return False

        if token is None:
            token = CancellationToken()
        config = self._get_config()
        timings = MorseTimings.from_wpm(config.wpm)
        chars = supported_characters(entry.callsign)

        self._rendering = True
        self._render_token = token
        self._now_playing_until_ms = None
        self._set_now_playing(entry)
        self._log(
            "PLAYBACK_RENDER_STARTED",
            details={"entry_id": entry.id, "callsign": entry.callsign, "wpm": config.wpm},
        )

        completed = True
        try:
            with timed(
                "callsign_render",
                session_id=self.session_id,
                details={"entry_id": entry.id, "wpm": config.wpm},
            ):
                for index, char in enumerate(chars):
                    if index:
                        if self._interrupted(token):
                            completed = False
                            break
                        await self._sink.silence(timings.inter_char_gap_ms)

                    if not await self.render_character(char, timings, config, token):
                        completed = False
                        break
        finally:
            self._rendering = False
            self._render_token = None
            self._now_playing_until_ms = self._clock_ms() + NOW_PLAYING_HOLD_MS

        if not completed:
            self._log("PLAYBACK_RENDER_CANCELLED", details={"entry_id": entry.id})
            return False

        self._reported.add(entry.id)
        self._log("PLAYBACK_RENDER_COMPLETED", details={"entry_id": entry.id})
        await self._report_played(entry.id)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _interrupted(self, token: CancellationToken) -> bool:
        return token.cancelled or not self._is_audio_owner()

    def _pending(self) -> list[QueueEntry]:
        backlog = list(self._get_backlog())
        self._reported &= {entry.id for entry in backlog}
        return [entry for entry in backlog if entry.id not in self._reported]

    def _set_now_playing(self, entry: QueueEntry | None) -> None:
        if entry is None:
            self._now_playing_until_ms = None
        if entry is self._now_playing:
            return
        self._now_playing = entry
        if self._on_now_playing is not None:
            self._on_now_playing(entry)

    def _log(self, event_type: str, *, details: dict | None = None) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": event_type,
            "session_id": self.session_id,
            "playback_state": self._state.value,
            "details": details or {},
        })
