"""Terminal presentation layer."""

from .session import TutorREPL, start_repl
from .commands import COMMANDS, get_command_help

__all__ = ["TutorREPL", "start_repl", "COMMANDS", "get_command_help"]
