#!/usr/bin/env python3
"""
CodeMentor - AI Coding Tutor CLI

Usage:
    codementor                        # Start the tutor
    codementor --setup                # Configure an LLM API key
    codementor --clear-key            # Forget stored API keys
    codementor --provider openai      # Use a specific provider
    codementor --languages            # List the languages you can learn
"""

import argparse
import logging
from typing import List, Optional

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from . import __version__
from .config import (
    clear_api_key,
    configured_providers,
    load_config,
    prompt_for_api_key,
    prompt_for_model,
)
from .db import ProfileRepository, PersistenceError, load_store, attach_autosave
from .llm import PROVIDERS, create_llm_client
from .log import configure_logging
from .tutoring import LANGUAGE_OPTIONS, ContentProvider, ProgressionController

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='codementor',
        description='CodeMentor - Learn to code one lesson at a time',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  codementor --setup                    # Configure API key (first time)
  codementor --clear-key --provider openai  # Forget the stored OpenAI key
  codementor                            # Start the tutor
  codementor --provider gemini          # Use Gemini for this run
  codementor --model gpt-4o-mini        # Override the model
  codementor --db ./profiles.db         # Keep profiles in a different file
  codementor --languages                # List available languages
        """
    )

    parser.add_argument('--setup', action='store_true',
                        help='Configure codementor (set API key, etc.)')
    parser.add_argument('--clear-key', action='store_true',
                        help='Remove stored API keys (only --provider\'s key when given)')
    parser.add_argument('--provider', choices=list(PROVIDERS.keys()),
                        help='LLM provider to use (default: preferred/first configured)')
    parser.add_argument('--model', help='Model name override for the provider')
    parser.add_argument('--db', metavar='PATH',
                        help='Profile database path (default: ~/.codementor/profiles.db)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Show INFO logging (state transitions, model calls)')
    parser.add_argument('--languages', action='store_true',
                        help='List the languages you can learn')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def run_setup(console: Console, provider: Optional[str] = None):
    """Interactive first-run configuration: API key, then default model"""
    console.print("[bold]CodeMentor Setup[/bold]")
    configured = configured_providers()
    if configured:
        console.print(f"\nConfigured providers: {', '.join(configured)}")
        if Confirm.ask("Add or replace a key?", default=False, console=console):
            prompt_for_api_key(provider, console=console)
    else:
        prompt_for_api_key(provider, console=console)
    prompt_for_model(console=console)
    console.print("Setup complete.")


def run_clear_key(console: Console, provider: Optional[str] = None):
    removed = clear_api_key(provider)
    if removed:
        console.print(f"Removed stored API keys for: {', '.join(removed)}")
    else:
        console.print("No stored API keys found.")


def list_languages(console: Console):
    table = Table(title="Languages")
    table.add_column("ID", style="cyan")
    table.add_column("Language")
    for option in LANGUAGE_OPTIONS:
        table.add_row(option.value, f"{option.emoji} {option.label}")
    console.print(table)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    console = Console()
    configure_logging('INFO' if args.verbose else load_config().get('log_level'))

    if args.setup:
        run_setup(console, args.provider)
        return

    if args.clear_key:
        run_clear_key(console, args.provider)
        return

    if args.languages:
        list_languages(console)
        return

    llm = create_llm_client(provider=args.provider, model=args.model)
    if llm is None:
        console.print("[yellow]No LLM provider available. Run 'codementor --setup' to add an API key.[/yellow]")

    try:
        repository = ProfileRepository(args.db)
    except PersistenceError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    store = load_store(repository)
    attach_autosave(repository, store)
    controller = ProgressionController(store, ContentProvider(llm))

    from .repl import start_repl
    try:
        start_repl(controller, console=console)
    finally:
        repository.close()


if __name__ == "__main__":
    main()
