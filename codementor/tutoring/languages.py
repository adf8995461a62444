#!/usr/bin/env python3
"""
Programming languages a learner can pick a track for.
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class LanguageOption:
    value: str   # Track key, e.g. "python"
    label: str
    emoji: str


LANGUAGE_OPTIONS: List[LanguageOption] = [
    LanguageOption('javascript', 'JavaScript', '📜'),
    LanguageOption('python', 'Python', '🐍'),
    LanguageOption('java', 'Java', '☕️'),
    LanguageOption('csharp', 'C#', '✨'),
    LanguageOption('go', 'Go', '🐹'),
    LanguageOption('html', 'HTML', '📄'),
]


def get_language(value: str) -> Optional[LanguageOption]:
    """Look up a language by its key or display label (case-insensitive)"""
    needle = value.strip().lower()
    for option in LANGUAGE_OPTIONS:
        if option.value == needle or option.label.lower() == needle:
            return option
    return None


def language_label(value: Optional[str]) -> str:
    option = get_language(value) if value else None
    return option.label if option else (value or '')
