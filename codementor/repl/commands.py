#!/usr/bin/env python3
"""
Command definitions for the tutoring REPL.
"""

COMMANDS = {
    # Profiles
    'profiles': {
        'help': 'List learner profiles',
        'usage': 'profiles',
        'examples': ['profiles'],
    },
    'profile': {
        'help': 'Switch to another profile',
        'usage': 'profile <id>',
        'examples': ['profile user-2'],
    },
    'new-profile': {
        'help': 'Create a profile and switch to it',
        'usage': 'new-profile [name]',
        'examples': ['new-profile', 'new-profile Ada'],
    },

    # Menu
    'languages': {
        'help': 'List languages and your progress in each',
        'usage': 'languages',
        'examples': ['languages'],
    },
    'lang': {
        'help': 'Pick the language to learn',
        'usage': 'lang <id>',
        'examples': ['lang python', 'lang go'],
    },
    'level': {
        'help': 'Show or set your experience level for this language',
        'usage': 'level [description]',
        'examples': ['level', 'level "I know some JavaScript"'],
    },
    'start': {
        'help': 'Start a new lesson in the selected language',
        'usage': 'start',
        'examples': ['start'],
    },
    'continue': {
        'help': 'Resume the lesson or quiz you left',
        'usage': 'continue',
        'examples': ['continue'],
    },

    # Lesson & quiz
    'exit': {
        'help': 'Leave the lesson or quiz and return to the menu',
        'usage': 'exit',
        'examples': ['exit'],
    },
    'insights': {
        'help': 'Show objectives, vocabulary and unlocked code examples',
        'usage': 'insights',
        'examples': ['insights'],
    },
    'define': {
        'help': 'Look up a vocabulary word',
        'usage': 'define <word>',
        'examples': ['define closure', 'define "list comprehension"'],
    },

    # Results
    'revisit': {
        'help': 'Go back over the lesson you were just quizzed on',
        'usage': 'revisit',
        'examples': ['revisit'],
    },
    'next': {
        'help': 'Move on to the next lesson',
        'usage': 'next',
        'examples': ['next'],
    },

    # Utilities
    'status': {
        'help': 'Show profile, language, level and progress',
        'usage': 'status',
        'examples': ['status'],
    },
    'help': {
        'help': 'Show available commands',
        'usage': 'help [command]',
        'examples': ['help', 'help define'],
    },
    'quit': {
        'help': 'Quit codementor',
        'usage': 'quit',
        'examples': ['quit'],
    },
}


def get_command_help(command: str = None) -> str:
    """Get help text for a command or all commands"""
    if command and command in COMMANDS:
        cmd = COMMANDS[command]
        lines = [
            f"  {command}: {cmd['help']}",
            f"  Usage: {cmd['usage']}",
        ]
        if cmd.get('examples'):
            lines.append(f"  Examples: {', '.join(cmd['examples'])}")
        return '\n'.join(lines)

    # Show all commands grouped
    groups = {
        'Profiles': ['profiles', 'profile', 'new-profile'],
        'Menu': ['languages', 'lang', 'level', 'start', 'continue'],
        'Lesson & Quiz': ['exit', 'insights', 'define'],
        'Results': ['revisit', 'next'],
        'Utilities': ['status', 'help', 'quit'],
    }

    lines = ["Available commands:\n"]
    for group, cmds in groups.items():
        lines.append(f"  {group}:")
        for cmd in cmds:
            if cmd in COMMANDS:
                lines.append(f"    {cmd:12} - {COMMANDS[cmd]['help']}")
        lines.append("")

    lines.append("In a lesson, anything else you type goes to the tutor.")
    lines.append("In a quiz, anything else is your answer (a single letter picks an option).")
    lines.append("Type 'help <command>' for detailed help on a specific command.")
    return '\n'.join(lines)
