#!/usr/bin/env python3
"""
Interactive REPL for the coding tutor.

A thin presentation layer: reads the controller's state, renders it with rich,
and forwards commands and free text back to the controller.
"""

from pathlib import Path
from typing import Optional, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.markdown import Markdown
from rich.markup import escape
from rich.text import Text

from ..config import get_config_dir
from ..tutoring import (
    AppState,
    LANGUAGE_OPTIONS,
    ProgressionController,
    Speaker,
    get_language,
    language_label,
    resolve_choice,
)
from .commands import COMMANDS, get_command_help

STATE_LABELS = {
    AppState.SELECTING_LANGUAGE: 'menu',
    AppState.IN_LESSON: 'lesson',
    AppState.IN_QUIZ: 'quiz',
    AppState.SHOWING_RESULTS: 'results',
}


class TutorREPL:
    """Interactive REPL around a ProgressionController"""

    def __init__(
        self,
        controller: ProgressionController,
        console: Optional[Console] = None,
        history_path: Optional[Path] = None,
    ):
        self.controller = controller
        self.console = console or Console()
        self.history_path = history_path
        self.prompt_session: Optional[PromptSession] = None

        # What has already been printed for the active track
        self._seen_key: Optional[Tuple] = None
        self._seen_messages = 0
        self._seen_examples = 0
        self._seen_state: Optional[AppState] = None

    def run(self):
        """Main REPL loop"""
        history_path = self.history_path or (get_config_dir() / 'repl_history')
        history_path.parent.mkdir(parents=True, exist_ok=True)
        self.prompt_session = PromptSession(
            history=FileHistory(str(history_path)),
            auto_suggest=AutoSuggestFromHistory(),
        )
        self._print_welcome()
        self._render_updates()

        while True:
            try:
                user_input = self.prompt_session.prompt(self._get_prompt())

                if not user_input.strip():
                    continue

                result = self._process_command(user_input.strip())

                if result == 'quit':
                    self._handle_quit()
                    break

            except KeyboardInterrupt:
                self.console.print("\n[dim]Use 'quit' to leave codementor[/dim]")
            except EOFError:
                self._handle_quit()
                break
            except Exception as e:
                self.console.print(f"[red]Error: {e}[/red]")

    def _print_welcome(self):
        """Print welcome message"""
        welcome = """
[bold cyan]CodeMentor[/bold cyan] - AI Coding Tutor

Pick a language, learn a topic with your tutor, then prove it in a short quiz.

[dim]Commands: lang, start, continue, insights, define, help
Type 'help' for all commands or 'help <cmd>' for details.[/dim]
"""
        self.console.print(Panel(welcome, border_style="cyan"))

        if self.controller.provider.is_available():
            llm = self.controller.provider.llm
            self.console.print(f"[green]Tutor connected ({llm.provider}/{llm.model_name}).[/green]")
        else:
            self.console.print(
                "[yellow]Note: No LLM provider configured. Run 'codementor --setup' "
                "or set ANTHROPIC_API_KEY, OPENAI_API_KEY or GOOGLE_API_KEY.[/yellow]"
            )

    def _get_prompt(self) -> str:
        """Generate context-aware prompt"""
        parts = ['codementor']
        profile = self.controller.active_profile
        if profile:
            parts.append(f"[{profile.name}]")
            if profile.active_language:
                parts.append(f"({profile.active_language}/{STATE_LABELS[profile.state]})")
        return ' '.join(parts) + '> '

    def _process_command(self, user_input: str) -> Optional[str]:
        """Process user input and dispatch to handlers"""
        parts = user_input.split(maxsplit=1)
        command = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ''

        handlers = {
            'profiles': self._cmd_profiles,
            'profile': self._cmd_profile,
            'new-profile': self._cmd_new_profile,
            'languages': self._cmd_languages,
            'lang': self._cmd_lang,
            'level': self._cmd_level,
            'start': self._cmd_start,
            'continue': self._cmd_continue,
            'exit': self._cmd_exit,
            'revisit': self._cmd_revisit,
            'next': self._cmd_next,
            'insights': self._cmd_insights,
            'define': self._cmd_define,
            'status': self._cmd_status,
            'help': self._cmd_help,
            'quit': lambda _: 'quit',
        }

        handler = handlers.get(command)
        if handler:
            result = handler(args)
        else:
            # Anything that isn't a command is conversation (lesson) or an answer (quiz)
            result = self._handle_free_text(user_input)

        self._render_updates()
        return result

    def _handle_free_text(self, text: str) -> None:
        state = self.controller.app_state
        if state == AppState.IN_LESSON:
            with self.console.status("[dim]Tutor is thinking...[/dim]"):
                self.controller.send_message(text)
        elif state == AppState.IN_QUIZ:
            track = self.controller.active_track
            answer = resolve_choice(track.current_question() if track else None, text)
            with self.console.status("[dim]Checking your answer...[/dim]"):
                self.controller.submit_answer(answer)
        else:
            command = text.split()[0]
            self.console.print(f"[red]Unknown command: {command}[/red]")
            self.console.print("[dim]Type 'help' for commands.[/dim]")

    # === Command Handlers ===

    def _cmd_profiles(self, args: str) -> None:
        """List profiles"""
        table = Table(title="Profiles")
        table.add_column("", style="green")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Language")
        table.add_column("State")

        active = self.controller.active_profile
        for p in self.controller.profiles:
            table.add_row(
                '→' if active and p.id == active.id else '',
                p.id,
                p.name,
                language_label(p.active_language) or '-',
                STATE_LABELS[p.state],
            )

        self.console.print(table)

    def _cmd_profile(self, args: str) -> None:
        """Switch profile"""
        if not args:
            self.console.print("[red]Usage: profile <id>[/red]")
            return
        try:
            profile = self.controller.select_profile(args)
        except KeyError:
            self.console.print(f"[red]Profile not found: {args}[/red]")
            self.console.print("[dim]Use 'profiles' to list profiles[/dim]")
            return
        self.console.print(f"[green]Switched to {profile.name}.[/green]")

    def _cmd_new_profile(self, args: str) -> None:
        """Create a profile"""
        profile = self.controller.create_profile(args or None)
        self.console.print(f"[green]Created {profile.name} ({profile.id}).[/green]")

    def _cmd_languages(self, args: str) -> None:
        """List languages with per-track progress"""
        profile = self.controller.active_profile
        table = Table(title="Languages")
        table.add_column("ID", style="cyan")
        table.add_column("Language")
        table.add_column("Level")
        table.add_column("Lesson")

        for option in LANGUAGE_OPTIONS:
            track = profile.tracks.get(option.value) if profile else None
            table.add_row(
                option.value,
                f"{option.emoji} {option.label}",
                track.level if track else '-',
                track.lesson.topic if track and track.lesson else '-',
            )

        self.console.print(table)

    def _cmd_lang(self, args: str) -> None:
        """Select language"""
        if not args:
            self.console.print("[red]Usage: lang <id>[/red]")
            return
        if get_language(args) is None:
            self.console.print(f"[red]Unknown language: {args}[/red]")
            self.console.print("[dim]Use 'languages' to see the options[/dim]")
            return

        track = self.controller.select_language(args)
        if track is None:
            self.console.print("[yellow]Use 'exit' to return to the menu before switching languages.[/yellow]")
            return

        self.console.print(f"\n[green]Language:[/green] {language_label(self.controller.active_language)}")
        self.console.print(f"[dim]Level: {track.level}[/dim]")
        if track.suspended_state:
            self.console.print(
                f"[dim]You have a {STATE_LABELS[track.suspended_state]} in progress - "
                "'continue' to resume or 'start' for a new lesson.[/dim]"
            )
        else:
            self.console.print("[dim]Use 'level' to describe your experience, then 'start'.[/dim]")

    def _cmd_level(self, args: str) -> None:
        """Show or set level"""
        track = self.controller.active_track
        if track is None:
            self.console.print("[red]No language selected. Use 'lang' first.[/red]")
            return
        if not args:
            self.console.print(f"Level: {track.level}")
            return
        level = args.strip('"\'').strip()
        if not level:
            self.console.print(f"[dim]Usage: {escape(COMMANDS['level']['usage'])}[/dim]")
            return
        track = self.controller.update_level(level)
        self.console.print(f"[green]Level set:[/green] {track.level}")

    def _cmd_start(self, args: str) -> None:
        """Start a new lesson"""
        if self.controller.active_track is None:
            self.console.print("[red]No language selected. Use 'lang' first.[/red]")
            return
        if self.controller.app_state != AppState.SELECTING_LANGUAGE:
            self.console.print("[yellow]Use 'exit' to return to the menu first.[/yellow]")
            return

        label = language_label(self.controller.active_language)
        with self.console.status(f"[dim]Preparing your {label} lesson...[/dim]"):
            started = self.controller.start_lesson()
        if started:
            self.console.print(f"\n[bold]Lesson:[/bold] {self.controller.active_track.lesson.topic}")

    def _cmd_continue(self, args: str) -> None:
        """Resume the suspended lesson or quiz"""
        if not self.controller.continue_track():
            self.console.print("[yellow]Nothing to continue. Use 'start' for a new lesson.[/yellow]")
            return
        self._reprint_conversation()

    def _cmd_exit(self, args: str) -> None:
        """Back to the menu"""
        if not self.controller.exit_to_menu():
            self.console.print("[yellow]You're not in a lesson or quiz.[/yellow]")
            return
        self.console.print("[dim]Back at the menu. 'continue' picks up where you left off.[/dim]")

    def _cmd_revisit(self, args: str) -> None:
        """Review the same lesson"""
        if not self.controller.revisit_lesson():
            self.console.print("[yellow]'revisit' is available after a quiz.[/yellow]")

    def _cmd_next(self, args: str) -> None:
        """Move on to the next lesson"""
        if self.controller.app_state != AppState.SHOWING_RESULTS:
            self.console.print("[yellow]'next' is available after a quiz.[/yellow]")
            return
        with self.console.status("[dim]Preparing your next lesson...[/dim]"):
            started = self.controller.next_lesson()
        if started:
            self.console.print(f"\n[bold]Lesson:[/bold] {self.controller.active_track.lesson.topic}")

    def _cmd_insights(self, args: str) -> None:
        """Objectives, vocabulary and unlocked code examples"""
        track = self.controller.active_track
        if track is None or track.lesson is None:
            self.console.print("[yellow]Waiting for a lesson to begin. Use 'start'.[/yellow]")
            return

        lesson = track.lesson
        lines = [f"# {lesson.topic}", "", "## Learning Objectives"]
        lines.extend(f"- {obj}" for obj in lesson.objectives)
        lines.extend(["", "## Key Vocabulary"])
        lines.append(', '.join(f"`{word}`" for word in lesson.vocabulary) or '_None_')
        lines.extend(["", "## Code Examples"])

        revealed = track.revealed_examples()
        if not revealed:
            lines.append("_Code examples will appear here as the lesson progresses._")
        fence = self.controller.active_language or ''
        for ex in revealed:
            lines.extend(["", f"**{ex.title}**", f"```{fence}", ex.code, "```"])

        self.console.print(Panel(Markdown('\n'.join(lines)), title="Lesson Insights", border_style="cyan"))

    def _cmd_define(self, args: str) -> None:
        """Look up a vocabulary word"""
        word = args.strip('"\'')
        if not word:
            self.console.print("[red]Usage: define <word>[/red]")
            return
        with self.console.status(f"[dim]Looking up {word}...[/dim]"):
            entry = self.controller.request_vocab_definition(word)
        body = f"{escape(entry.definition)}\n\n[bold]Example:[/bold] {escape(entry.example)}"
        self.console.print(Panel(body, title=escape(entry.word), border_style="cyan"))

    def _cmd_status(self, args: str) -> None:
        """Show current status"""
        profile = self.controller.active_profile
        if profile is None:
            self.console.print("[yellow]No active profile.[/yellow]")
            return

        self.console.print(f"\n[bold]Profile:[/bold] {profile.name} ({profile.id})")
        self.console.print(f"[bold]State:[/bold] {STATE_LABELS[profile.state]}")
        track = profile.active_track
        if track is None:
            self.console.print("[dim]No language selected.[/dim]")
            return

        self.console.print(f"[bold]Language:[/bold] {language_label(profile.active_language)}")
        self.console.print(f"[bold]Level:[/bold] {track.level}")
        if track.lesson:
            self.console.print(f"[bold]Lesson:[/bold] {track.lesson.topic}")
            self.console.print(
                f"[bold]Code examples:[/bold] {len(track.revealed_example_titles)}"
                f"/{len(track.lesson.code_examples)} unlocked"
            )
        if track.quiz:
            self.console.print(
                f"[bold]Quiz:[/bold] question {track.current_question_index + 1} of {len(track.quiz)}"
            )
        if track.suspended_state:
            self.console.print(f"[dim]Suspended {STATE_LABELS[track.suspended_state]} - use 'continue'.[/dim]")

    def _cmd_help(self, args: str) -> None:
        """Show help"""
        self.console.print(get_command_help(args or None))

    def _handle_quit(self):
        """Handle quit"""
        self.console.print("[dim]Progress saved. Goodbye![/dim]")

    # === Rendering ===

    def _render_updates(self):
        """Print conversation messages and code examples added since the last render"""
        profile = self.controller.active_profile
        track = self.controller.active_track
        if profile is None or track is None:
            return

        key = (profile.id, profile.active_language)
        if key != self._seen_key:
            self._seen_key = key
            self._seen_messages = len(track.conversation) if profile.state == AppState.SELECTING_LANGUAGE else 0
            self._seen_examples = len(track.revealed_example_titles)

        # A replaced conversation (new lesson) is shorter than what we saw
        if len(track.conversation) < self._seen_messages:
            self._seen_messages = 0
        for message in track.conversation[self._seen_messages:]:
            self._print_message(message)
        self._seen_messages = len(track.conversation)

        if len(track.revealed_example_titles) < self._seen_examples:
            self._seen_examples = 0
        for title in track.revealed_example_titles[self._seen_examples:]:
            self.console.print(f"[magenta]New code example unlocked:[/magenta] {title} [dim](see 'insights')[/dim]")
        self._seen_examples = len(track.revealed_example_titles)

        entered_results = (
            profile.state == AppState.SHOWING_RESULTS and self._seen_state != AppState.SHOWING_RESULTS
        )
        self._seen_state = profile.state
        if entered_results:
            self._print_report(track)

    def _reprint_conversation(self, limit: int = 6):
        """Show the tail of the conversation when resuming a track"""
        track = self.controller.active_track
        if track is None:
            return
        for message in track.recent_conversation(limit):
            self._print_message(message)
        self._seen_messages = len(track.conversation)

    def _print_message(self, message):
        if message.speaker == Speaker.USER:
            return
        if message.speaker == Speaker.TUTOR:
            self.console.print(Panel(Markdown(message.text), title="Tutor", border_style="green"))
        else:
            self.console.print(Panel(Text(message.text), border_style="yellow"))

    def _print_report(self, track):
        if track.mastery_report is None:
            self.console.print("[dim]'revisit' to review this lesson, 'next' to move on.[/dim]")
            return

        table = Table(title="Mastery Report")
        table.add_column("Objective")
        table.add_column("Score", justify="right")
        table.add_column("Misconceptions")

        for entry in track.mastery_report:
            style = 'green' if entry.final_score >= 7 else ('yellow' if entry.final_score >= 4 else 'red')
            table.add_row(
                escape(entry.objective),
                f"[{style}]{entry.final_score:g}/10[/{style}]",
                escape(entry.misconceptions) if entry.has_misconceptions() else '[dim]None[/dim]',
            )

        self.console.print(table)
        self.console.print("[dim]'revisit' to review this lesson, 'next' to move on.[/dim]")


def start_repl(controller: ProgressionController, console: Optional[Console] = None):
    """Entry point for starting the REPL"""
    repl = TutorREPL(controller, console=console)
    repl.run()
