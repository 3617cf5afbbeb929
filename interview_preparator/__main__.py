#!/usr/bin/env python3
"""
Main entry point for the interview preparator.

    python -m interview_preparator [final-round] [--role=ROLE] [--api=URL]
    python -m interview_preparator serve [--host=HOST] [--port=PORT] [--reload]
"""
import asyncio
import sys
import threading

from .config import get_config, Config
from .interview.controller import InterviewSessionController
from .interview.events import EventType
from .interview.models import InterviewResult, Speaker
from .interview.schemas import SessionState, describe_state
from .utils import setup_logging

USAGE = __doc__


def _option(name: str, default=None):
    prefix = f"--{name}="
    for arg in sys.argv[1:]:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return default


def _print_event(event) -> None:
    if event.event_type == EventType.STATE_CHANGED:
        state = SessionState(event.data["current"])
        if state in (SessionState.TRANSCRIBING, SessionState.REQUESTING_FOLLOW_UP, SessionState.CLOSED):
            print(f"⏳ {describe_state(state)}")
    elif event.event_type == EventType.TURN_APPENDED:
        if event.data["speaker"] == Speaker.INTERVIEWER.value:
            print(f"\n🤖 {event.data['text']}")
        else:
            print(f"💬 \"{event.data['text'] or '(no speech detected)'}\"")
    elif event.event_type == EventType.RECORDING_DISCARDED:
        print("⚠️  Nothing was recorded. Please try again.")
    elif event.event_type == EventType.PLAYBACK_FAILED:
        print(f"🔇 Could not play the question audio: {event.data['error_message']}")
    elif event.event_type == EventType.ERROR_OCCURRED:
        print(f"❌ Error: {event.data['error_message']}. Please restart the round.")


def _read_line(loop: asyncio.AbstractEventLoop, prompt: str) -> asyncio.Future:
    """
    Read one line of stdin without blocking the loop.

    The reader is a daemon thread, not an executor worker, so a prompt left
    waiting at Ctrl-C does not block shutdown.
    """
    future = loop.create_future()

    def deliver(setter, value) -> None:
        if not future.done():
            setter(value)

    def reader() -> None:
        try:
            outcome = (future.set_result, input(prompt))
        except (EOFError, OSError) as e:
            outcome = (future.set_exception, e)
        if not loop.is_closed():
            loop.call_soon_threadsafe(deliver, *outcome)

    threading.Thread(target=reader, name="console-input", daemon=True).start()
    return future


async def run_console_session(controller: InterviewSessionController) -> InterviewResult:
    """Drive a session from the terminal: Enter starts and stops each answer."""
    loop = asyncio.get_running_loop()
    controller.event_bus.subscribe_all(_print_event)

    try:
        await controller.start()
        while not controller.is_terminal:
            await controller.wait_for(SessionState.USER_READY)
            if controller.is_terminal or controller.is_torn_down:
                break

            await _read_line(loop, "\n🎙️  Press Enter to start your answer...")
            await controller.toggle_recording()
            if controller.state is not SessionState.RECORDING:
                continue

            await _read_line(loop, "🔴 Recording... press Enter when you are done.")
            await controller.toggle_recording()
    finally:
        controller.teardown()

    return controller.result()


def run_final_round(config: Config) -> int:
    role = _option("role", config.default_role)
    config.api_base_url = (_option("api", config.api_base_url) or config.api_base_url).rstrip("/")

    log_file = setup_logging(config.log_file)
    print(f"🎙️  Final round for: {role}")
    print(f"🌐 Backend: {config.api_base_url}")
    print(f"📝 Detailed logs: {log_file}")
    print("=" * 50)

    controller = InterviewSessionController.from_config(config, role=role)
    try:
        result = asyncio.run(run_console_session(controller))
    except KeyboardInterrupt:
        controller.teardown()
        print("\n👋 Interview abandoned.")
        return 130

    print("=" * 50)
    if result.completed:
        print(f"✅ {describe_state(SessionState.CLOSED)} ({result.turn_count} answers recorded)")
        return 0
    print(f"❌ {describe_state(SessionState.ERROR, result.error_message)}")
    return 1


def run_backend(config: Config) -> int:
    from .api.main import run_server

    port = _option("port")
    try:
        port = int(port) if port else None
    except ValueError:
        print("❌ Invalid port value. Use --port=3001")
        return 1

    setup_logging(config.log_file, console_level=config.log_level)
    print(f"🚀 Serving on {_option('host', config.server_host)}:{port or config.server_port}")
    run_server(host=_option("host"), port=port, reload="--reload" in sys.argv)
    return 0


def main() -> int:
    """Command-line interface."""
    if "--help" in sys.argv or "-h" in sys.argv:
        print(USAGE)
        return 0

    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        return 1

    commands = [arg for arg in sys.argv[1:] if not arg.startswith("-")]
    command = commands[0] if commands else "final-round"

    if command == "serve":
        return run_backend(config)
    if command == "final-round":
        return run_final_round(config)

    print(f"❌ Unknown command: {command}")
    print(USAGE)
    return 1


if __name__ == "__main__":
    sys.exit(main())
