"""
Interactive console client.

Usage (from backend/):
    python -m client.cli [--transport recording|webrtc] [--server URL]

Press Enter to start or stop talking; type q then Enter to quit.
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys

from dotenv import load_dotenv

from config import AppConfig, Transport
from observability.logger import set_enabled
from session.api_client import VoiceApiClient
from session.collaborator import VoiceUICollaborator
from session.factory import build_controller


class ConsoleCollaborator(VoiceUICollaborator):
    """Renders controller callbacks as plain text on stderr."""

    def on_bear_action(self, action: str) -> None:
        print(f"[bear] {action}", file=sys.stderr)

    def on_listening_changed(self, listening: bool) -> None:
        print("[mic] listening" if listening else "[mic] off", file=sys.stderr)

    def on_speaking_changed(self, speaking: bool) -> None:
        print("[bear] speaking" if speaking else "[bear] quiet", file=sys.stderr)

    def on_alert(self, message: str) -> None:
        print(f"[alert] {message}", file=sys.stderr)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Talk to the bear from a terminal.")
    parser.add_argument(
        "--transport",
        choices=[t.value for t in Transport],
        default=None,
        help="Override VOICE_TRANSPORT.",
    )
    parser.add_argument("--server", default=None, help="Override VOICE_SERVER_URL.")
    return parser.parse_args(argv)


async def _run(config: AppConfig) -> None:
    api_client = VoiceApiClient(config.voice_server_url)
    controller = build_controller(
        config,
        collaborator=ConsoleCollaborator(),
        api_client=api_client,
    )

    print(
        f"[cli] transport={config.voice_transport.value} server={config.voice_server_url}",
        file=sys.stderr,
    )
    print("[cli] Enter toggles the microphone, q quits.", file=sys.stderr)

    try:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line or line.strip().lower() == "q":
                break
            await controller.toggle()
    finally:
        await controller.close()
        await api_client.aclose()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)

    config = AppConfig.load_from_env()
    overrides: dict[str, object] = {}
    if args.transport:
        overrides["voice_transport"] = Transport(args.transport)
    if args.server:
        overrides["voice_server_url"] = args.server
    if overrides:
        config = dataclasses.replace(config, **overrides)
    set_enabled(config.enable_json_logs)

    try:
        asyncio.run(_run(config))
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
