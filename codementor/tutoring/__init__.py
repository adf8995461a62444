#!/usr/bin/env python3
"""
Lesson → quiz → results progression for per-language learning tracks.

Each learner profile keeps one track per programming language. A track moves
through four states:
- Selecting language: the menu, where a lesson is started or resumed
- In lesson: conversation with the tutor, code examples unlock as they come up
- In quiz: one question at a time, each answer evaluated
- Showing results: mastery report, then revisit or move on
"""

from .state import (
    AppState,
    Speaker,
    Message,
    CodeExample,
    Lesson,
    QuizQuestion,
    Evaluation,
    Answer,
    ReportEntry,
    VocabDefinition,
    Track,
    Profile,
)
from .languages import LanguageOption, LANGUAGE_OPTIONS, get_language, language_label
from .store import ProfileStore
from .provider import (
    ContentProvider,
    TutoringSession,
    RevealDecision,
    ProviderError,
    TransientProviderError,
    MalformedResponseError,
)
from .controller import ProgressionController, format_question, resolve_choice

__all__ = [
    'AppState',
    'Speaker',
    'Message',
    'CodeExample',
    'Lesson',
    'QuizQuestion',
    'Evaluation',
    'Answer',
    'ReportEntry',
    'VocabDefinition',
    'Track',
    'Profile',
    'LanguageOption',
    'LANGUAGE_OPTIONS',
    'get_language',
    'language_label',
    'ProfileStore',
    'ContentProvider',
    'TutoringSession',
    'RevealDecision',
    'ProviderError',
    'TransientProviderError',
    'MalformedResponseError',
    'ProgressionController',
    'format_question',
    'resolve_choice',
]
