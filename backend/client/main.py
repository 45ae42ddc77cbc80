"""
Console entry point for a pileup participant.

Examples:
    pileup-client --add W1AW --add K1ABC
    pileup-client --claim --play --waterfall
    pileup-client --claim --play --wav session.wav --duration 60
    pileup-client --render W1AW --wpm 25 --wav w1aw.wav
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
from typing import Any, Mapping

from dotenv import load_dotenv

from client.config import ClientConfig
from client.connection import PileupClient
from observability.logger import set_log_level
from playback.morse import callsign_to_morse
from playback.scheduler import PlaybackScheduler
from playback.tones import BufferToneSink, SinkUnavailable, SoundDeviceToneSink, ToneSink
from protocol import messages as m
from spectral.capture import MicrophoneCapture
from store.state_dataclass import QueueEntry, SessionConfig
from store.validation import validate_config_value


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="pileup-client")
    ap.add_argument("--url", default=None, help="Server WebSocket URL (default: PILEUP_SERVER_URL).")
    ap.add_argument("--add", action="append", default=[], metavar="CALLSIGN", help="Add a callsign (repeatable).")
    ap.add_argument("--claim", action="store_true", help="Claim the audio output.")
    ap.add_argument("--play", action="store_true", help="Continuously play the backlog once audio is claimed.")
    ap.add_argument("--waterfall", action="store_true", help="Capture the microphone and relay the waterfall.")
    ap.add_argument("--wav", default=None, help="Render tones into this WAV file instead of the sound card.")
    ap.add_argument("--duration", type=float, default=None, help="Disconnect after this many seconds.")
    ap.add_argument("--render", default=None, metavar="CALLSIGN", help="Render one callsign offline and exit.")
    ap.add_argument("--wpm", type=float, default=None, help="Speed for --render.")
    ap.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR.")
    return ap


async def _render_offline(callsign: str, wpm: float | None, path: str, sample_rate_hz: int) -> int:
    config = SessionConfig() if wpm is None else replace(SessionConfig(), wpm=wpm)
    sink = BufferToneSink(sample_rate_hz=sample_rate_hz)

    async def _discard(_entry_id: int) -> None:
        return None

    scheduler = PlaybackScheduler(
        sink=sink,
        get_backlog=lambda: (),
        get_config=lambda: config,
        is_audio_owner=lambda: True,
        report_played=_discard,
    )
    await scheduler.render_callsign(QueueEntry(0, callsign.upper(), 0, ""))
    sink.write_wav(path)
    print(f"{callsign.upper()}  {callsign_to_morse(callsign)}  {sink.elapsed_ms:.0f} ms -> {path}")
    return 0


async def _run_online(args: argparse.Namespace, config: ClientConfig) -> int:
    sink: ToneSink
    if args.wav:
        sink = BufferToneSink(sample_rate_hz=config.tone_sample_rate_hz)
    else:
        try:
            sink = SoundDeviceToneSink(sample_rate_hz=config.tone_sample_rate_hz)
        except SinkUnavailable as e:
            print(f"Audio output unavailable: {e}")
            return 1

    capture = MicrophoneCapture() if args.waterfall else None

    async def on_message(client: PileupClient, message: Mapping[str, Any]) -> None:
        kind = message.get("type")

        if kind == m.STATE:
            for callsign in args.add:
                await client.add_callsign(callsign)
            # Only once; a reconnect must not re-add
            args.add = []
            if args.claim:
                await client.claim_audio()

        elif kind == m.AUDIO_CLAIM_RESULT:
            if not message.get("success"):
                print(client.state.last_claim_error)
                return
            if args.play:
                client.start_playback()
            if args.waterfall and not client.start_waterfall() and client.producer is not None:
                print(client.producer.status)

    client = PileupClient(config, sink=sink, capture=capture, on_message=on_message)

    try:
        if args.duration is None:
            await client.run()
        else:
            try:
                await asyncio.wait_for(client.run(), timeout=args.duration)
            except asyncio.TimeoutError:
                pass
    finally:
        await client.close()

    if isinstance(sink, BufferToneSink):
        sink.write_wav(args.wav)
        print(f"Wrote {sink.elapsed_ms / 1000.0:.1f} s of audio to {args.wav}")
    return 0


def main() -> int:
    load_dotenv()
    args = _build_parser().parse_args()
    set_log_level(args.log_level)

    config = ClientConfig.load_from_env()
    if args.url:
        config = replace(config, server_url=args.url)

    if args.render:
        if not args.wav:
            print("--render requires --wav")
            return 2
        if args.wpm is not None and validate_config_value("wpm", args.wpm) is None:
            print("--wpm is out of range")
            return 2
        return asyncio.run(_render_offline(args.render, args.wpm, args.wav, config.tone_sample_rate_hz))

    try:
        return asyncio.run(_run_online(args, config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
