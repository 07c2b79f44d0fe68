#!/usr/bin/env python3
"""Autonomous mode CLI - check and exercise the local fallback model.

Usage:
    python -m autonomous_mode models
    python -m autonomous_mode chat "Why is the sky blue?"
    python -m autonomous_mode chat --no-stream --grace-ms 0 "Hello"

Environment variables (alternative to args):
    OLLAMA_HOST                 Local Ollama server (default: http://127.0.0.1:11434)
    AUTONOMOUS_MODEL            Preferred model (default: llama3.2:latest)
    AUTONOMOUS_GRACE_PERIOD_MS  Grace period before going autonomous (default: 5000)
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from rich.console import Console

from .config import AutonomousModeConfig
from .errors import AutonomousModeError
from .manager import AutonomousModeManager
from .state import STATE_CHANGE, ConnectivityState

log = logging.getLogger("autonomous_mode")
console = Console()

STATE_COLORS = {
    ConnectivityState.CONNECTED: "green",
    ConnectivityState.DISCONNECTED: "yellow",
    ConnectivityState.AUTONOMOUS: "cyan",
}


class AutonomousCLI:
    """Runs one command against a fresh controller."""

    def __init__(self, config: AutonomousModeConfig, manager: Optional[AutonomousModeManager] = None):
        self.config = config
        self.manager = manager or AutonomousModeManager(config)
        self.manager.on(STATE_CHANGE, self._on_state_change)

    def _on_state_change(self, state: ConnectivityState) -> None:
        color = STATE_COLORS.get(state, "white")
        console.print(f"[{color}]State: {state}[/{color}]")

    async def models(self) -> int:
        """Print the locally served models. Returns exit code."""
        try:
            if not await self.manager.initialize():
                console.print(f"[red]No local models available at {self.config.base_url}[/red]")
                return 1
            for name in self.manager.get_models():
                marker = "[green]*[/green]" if name == self.manager.get_model() else " "
                console.print(f"{marker} {name}")
            return 0
        finally:
            await self.manager.close()

    async def chat(self, prompt: str, stream: bool = True) -> int:
        """Simulate a gateway outage and answer ``prompt`` locally. Returns exit code."""
        try:
            if not await self.manager.initialize():
                console.print(f"[red]Local model server not ready at {self.config.base_url}[/red]")
                return 1

            # Simulated outage: wait out the grace period
            self.manager.on_disconnect()
            await asyncio.sleep(self.config.grace_period + 0.05)
            if not self.manager.is_autonomous():
                console.print("[red]Did not enter autonomous mode[/red]")
                return 1

            messages = [{"role": "user", "content": prompt}]
            if stream:
                async for text in self.manager.chat_stream(messages):
                    console.print(text, end="", markup=False, highlight=False)
                console.print()
            else:
                console.print(await self.manager.chat(messages), markup=False, highlight=False)

            self.manager.on_reconnect()
            return 0
        except AutonomousModeError as e:
            log.error(f"{e}")
            return 1
        finally:
            await self.manager.close()


def main(argv: Optional[list[str]] = None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Autonomous mode - local model fallback for offline operation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m autonomous_mode models
  python -m autonomous_mode chat "Summarize today's notes"
  python -m autonomous_mode chat --model qwen3:4b --grace-ms 0 "Hello"
        """,
    )
    parser.add_argument(
        "--model",
        help="Preferred model (falls back to the first served model)",
    )
    parser.add_argument(
        "--host",
        help="Ollama server URL (or set OLLAMA_HOST)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("models", help="List locally served models")

    chat_parser = subparsers.add_parser("chat", help="Answer a prompt with the local model")
    chat_parser.add_argument("prompt", help="User message")
    chat_parser.add_argument(
        "--no-stream",
        action="store_true",
        help="Wait for the full reply instead of streaming it",
    )
    chat_parser.add_argument(
        "--grace-ms",
        type=int,
        default=None,
        help="Grace period before going autonomous (default: from env or 5000)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    overrides = {}
    if args.model:
        overrides["model"] = args.model
    if args.host:
        overrides["base_url"] = args.host
    if getattr(args, "grace_ms", None) is not None:
        overrides["grace_period_ms"] = args.grace_ms

    try:
        config = AutonomousModeConfig.from_env(**overrides)
    except ValueError as e:
        log.error(f"Invalid configuration: {e}")
        sys.exit(2)

    cli = AutonomousCLI(config)
    try:
        if args.command == "models":
            exit_code = asyncio.run(cli.models())
        else:
            exit_code = asyncio.run(cli.chat(args.prompt, stream=not args.no_stream))
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
