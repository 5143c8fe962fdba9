#!/usr/bin/env python3
"""
Scribe - type-along coding tutor CLI

Usage:
    scribe curriculum.json              # Start or resume a curriculum
    scribe --resume                     # Resume the curriculum you were last on
    scribe curriculum.json --mode discuss
"""

import sys
import argparse
import logging
from pathlib import Path

from rich.console import Console

from . import __version__
from .config import get_config_dir, get_config_value, setup_logging
from .llm import create_llm_client
from .tutoring.agent import TutorAgent
from .tutoring.call_queue import CallQueue
from .tutoring.curriculum import load_curriculum
from .tutoring.dispatcher import CommandDispatcher
from .tutoring.modes import ModeController, parse_mode
from .tutoring.plan_watcher import CurriculumWatcher
from .tutoring.progress import ProgressStore, SessionStore
from .tutoring.session import SessionLoop
from .tutoring.state import ScribeError
from .tutoring.tools import ToolExecutor
from .ui.display import TutorDisplay
from .ui.input import TerminalInput


logger = logging.getLogger(__name__)


def resolve_session(args, session_store: SessionStore, console: Console):
    """Pick the curriculum path and session state from arguments and saved state"""
    saved = session_store.load()

    if args.curriculum:
        curriculum_path = str(Path(args.curriculum).expanduser().resolve())
        if saved is not None and saved.curriculum_path == curriculum_path:
            return curriculum_path, saved
        return curriculum_path, session_store.create(curriculum_path)

    if saved is None or not saved.curriculum_path:
        raise ScribeError("No saved session to resume. Run 'scribe <curriculum.json>' first.")
    console.print(f'[dim]Resuming {saved.curriculum_path}[/dim]')
    return saved.curriculum_path, saved


def build_session(args, console: Console) -> SessionLoop:
    """Wire the tutoring runtime together"""
    session_store = SessionStore()
    curriculum_path, state = resolve_session(args, session_store, console)
    curriculum = load_curriculum(curriculum_path)

    working_dir = Path(curriculum.working_directory)
    working_dir.mkdir(parents=True, exist_ok=True)
    progress_store = ProgressStore(str(working_dir))
    if args.reset_progress:
        progress_store.clear()
        state.current_segment_index = 0
        state.completed_segments = []
        state.previous_segment_summary = ''
        session_store.save(state)
        console.print('[yellow]Progress reset.[/yellow]')

    llm = create_llm_client()
    if llm is None:
        raise ScribeError('No API key found. Set ANTHROPIC_API_KEY or add anthropic_api_key to ~/.scribe/config.json.')

    timeout = int(get_config_value('command_timeout'))
    tools = ToolExecutor(str(working_dir), progress_store, timeout=timeout)
    agent = TutorAgent(llm, tools, max_tokens=int(get_config_value('max_tokens')))

    display = TutorDisplay(console)
    modes = ModeController(parse_mode(args.mode or get_config_value('default_mode')))
    inputs = TerminalInput(
        console,
        footer=modes.footer,
        escape_timeout=float(get_config_value('escape_timeout')),
        history_path=get_config_dir() / 'history',
    )

    return SessionLoop(
        curriculum,
        state,
        session_store=session_store,
        progress_store=progress_store,
        call_queue=CallQueue(agent.run_turn, display),
        inputs=inputs,
        display=display,
        dispatcher=CommandDispatcher(str(working_dir), progress_store, timeout=timeout),
        modes=modes,
        watcher=CurriculumWatcher(curriculum_path),
        curriculum_path=curriculum_path,
    )


def main():
    """Main CLI entry point"""

    parser = argparse.ArgumentParser(
        description='Scribe - learn to code by typing it, one step at a time',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  scribe todo-app.json                  # Start (or pick up) a curriculum
  scribe --resume                       # Resume the last curriculum
  scribe todo-app.json --mode freeform  # Start in freeform mode
  scribe todo-app.json --reset-progress # Start the curriculum over

Modes (shift+tab cycles them during a session):
  guided    Type the code shown, checked character by character
  freeform  Write it your own way; the expected code is shown as a hint
  discuss   Talk it through with the tutor
        """
    )

    parser.add_argument('curriculum', nargs='?', help='Path to a curriculum JSON file')
    parser.add_argument('--resume', action='store_true',
                        help='Resume the curriculum recorded in your last session')
    parser.add_argument('--mode', choices=['guided', 'freeform', 'discuss'],
                        help='Initial input mode (default: guided)')
    parser.add_argument('--reset-progress', action='store_true',
                        help="Discard this project's progress and start from the first segment")
    parser.add_argument('--debug', action='store_true', help='Write debug logs to ~/.scribe/scribe.log')
    parser.add_argument('--version', action='version', version=f'scribe {__version__}')

    args = parser.parse_args()

    if not args.curriculum and not args.resume:
        parser.print_help()
        return

    log_path = setup_logging(debug=args.debug)
    console = Console()

    try:
        session = build_session(args, console)
    except ScribeError as e:
        logger.error('%s', e)
        console.print(f'[red]Error: {e}[/red]')
        sys.exit(1)

    if args.debug:
        console.print(f'[dim]Logging to {log_path}[/dim]')
    session.run()


if __name__ == '__main__':
    main()
