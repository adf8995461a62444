#!/usr/bin/env python3
"""
State management for the tutoring loop.
Profiles, per-language tracks and the value objects they own.

Every structure here is frozen. A track or profile is changed by building a
new one with ``dataclasses.replace`` so a record handed to a renderer can never
be half-updated underneath it.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple


DEFAULT_LEVEL = 'a complete beginner'
NO_MISCONCEPTIONS = 'None'


def _expect_mapping(data, what: str) -> Dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be an object, got {type(data).__name__}")
    return data


class AppState(Enum):
    """What the active profile is currently looking at"""
    SELECTING_LANGUAGE = 'selecting_language'  # Menu: pick language/level, start or continue
    IN_LESSON = 'in_lesson'                    # Conversational lesson with the tutor
    IN_QUIZ = 'in_quiz'                        # Mastery check, one question at a time
    SHOWING_RESULTS = 'showing_results'        # Mastery report after the quiz


class Speaker(Enum):
    """Who wrote a conversation message"""
    USER = 'user'
    TUTOR = 'tutor'
    SYSTEM_NOTICE = 'system_notice'  # Quiz questions, feedback and error notices


@dataclass(frozen=True)
class Message:
    """A single conversation entry"""
    speaker: Speaker
    text: str

    def to_dict(self) -> Dict:
        return {'speaker': self.speaker.value, 'text': self.text}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Message':
        return cls(speaker=Speaker(data['speaker']), text=data['text'])


@dataclass(frozen=True)
class CodeExample:
    """A titled code snippet that belongs to a lesson"""
    title: str
    code: str


@dataclass(frozen=True)
class Lesson:
    """Generated lesson plan, fixed once assigned to a track"""
    topic: str
    body: str
    objectives: Tuple[str, ...] = ()
    code_examples: Tuple[CodeExample, ...] = ()
    vocabulary: Tuple[str, ...] = ()

    def example_titles(self) -> List[str]:
        return [example.title for example in self.code_examples]

    def get_example(self, title: str) -> Optional[CodeExample]:
        for example in self.code_examples:
            if example.title == title:
                return example
        return None

    def to_dict(self) -> Dict:
        return {
            'topic': self.topic,
            'body': self.body,
            'objectives': list(self.objectives),
            'code_examples': [
                {'title': ex.title, 'code': ex.code} for ex in self.code_examples
            ],
            'vocabulary': list(self.vocabulary),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Lesson':
        return cls(
            topic=data['topic'],
            body=data['body'],
            objectives=tuple(data.get('objectives', [])),
            code_examples=tuple(
                CodeExample(title=ex['title'], code=ex['code'])
                for ex in data.get('code_examples', [])
            ),
            vocabulary=tuple(data.get('vocabulary', [])),
        )


@dataclass(frozen=True)
class QuizQuestion:
    """One quiz question; options only for multiple-choice"""
    text: str
    related_objective: str
    options: Optional[Tuple[str, ...]] = None

    def is_multiple_choice(self) -> bool:
        return bool(self.options)

    def to_dict(self) -> Dict:
        return {
            'text': self.text,
            'related_objective': self.related_objective,
            'options': list(self.options) if self.options is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'QuizQuestion':
        options = data.get('options')
        return cls(
            text=data['text'],
            related_objective=data['related_objective'],
            options=tuple(options) if options is not None else None,
        )


@dataclass(frozen=True)
class Evaluation:
    """Model verdict on a single quiz answer"""
    is_correct: bool
    feedback: str
    mastery_score: float  # 1 (no understanding) .. 10 (full mastery)

    def to_dict(self) -> Dict:
        return {
            'is_correct': self.is_correct,
            'feedback': self.feedback,
            'mastery_score': self.mastery_score,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Evaluation':
        return cls(
            is_correct=bool(data['is_correct']),
            feedback=data['feedback'],
            mastery_score=data['mastery_score'],
        )


@dataclass(frozen=True)
class Answer:
    """The learner's answer slot for one quiz question"""
    question: str
    objective: str
    answer: str = ''
    evaluation: Optional[Evaluation] = None  # None until scored, then fixed

    @classmethod
    def empty_for(cls, question: QuizQuestion) -> 'Answer':
        return cls(question=question.text, objective=question.related_objective)

    def to_dict(self) -> Dict:
        return {
            'question': self.question,
            'answer': self.answer,
            'objective': self.objective,
            'evaluation': self.evaluation.to_dict() if self.evaluation else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Answer':
        evaluation = data.get('evaluation')
        return cls(
            question=data['question'],
            objective=data['objective'],
            answer=data.get('answer', ''),
            evaluation=Evaluation.from_dict(evaluation) if evaluation else None,
        )


@dataclass(frozen=True)
class ReportEntry:
    """Mastery summary for one learning objective"""
    objective: str
    final_score: float
    misconceptions: str = NO_MISCONCEPTIONS

    def has_misconceptions(self) -> bool:
        return self.misconceptions.strip() != NO_MISCONCEPTIONS

    def to_dict(self) -> Dict:
        return {
            'objective': self.objective,
            'final_score': self.final_score,
            'misconceptions': self.misconceptions,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ReportEntry':
        return cls(
            objective=data['objective'],
            final_score=data['final_score'],
            misconceptions=data.get('misconceptions', NO_MISCONCEPTIONS),
        )


@dataclass(frozen=True)
class VocabDefinition:
    """Dictionary entry for a lesson vocabulary word"""
    word: str
    definition: str
    example: str

    @classmethod
    def placeholder(cls, word: str) -> 'VocabDefinition':
        return cls(word=word, definition='Could not load definition.', example='Please try again.')


@dataclass(frozen=True)
class Track:
    """
    Lesson/quiz/results progression for one (profile, language) pair.

    Invariants are checked on construction, so every Track that exists is
    consistent: one answer slot per question, a valid question index while a
    quiz is running, and revealed titles drawn from the current lesson.
    """
    level: str = DEFAULT_LEVEL
    conversation: Tuple[Message, ...] = ()
    lesson: Optional[Lesson] = None
    quiz: Tuple[QuizQuestion, ...] = ()
    current_question_index: int = 0
    quiz_answers: Tuple[Answer, ...] = ()
    mastery_report: Optional[Tuple[ReportEntry, ...]] = None
    revealed_example_titles: Tuple[str, ...] = ()
    suspended_state: Optional[AppState] = None

    def __post_init__(self):
        if len(self.quiz_answers) != len(self.quiz):
            raise ValueError(
                f"quiz has {len(self.quiz)} questions but {len(self.quiz_answers)} answer slots"
            )
        if self.quiz and not 0 <= self.current_question_index < len(self.quiz):
            raise ValueError(f"question index {self.current_question_index} out of range")
        if not self.quiz and self.current_question_index != 0:
            raise ValueError("question index must be 0 when there is no quiz")
        titles = set(self.lesson.example_titles()) if self.lesson else set()
        unknown = [t for t in self.revealed_example_titles if t not in titles]
        if unknown:
            raise ValueError(f"revealed titles not in lesson: {unknown}")

    # Derived views

    def current_question(self) -> Optional[QuizQuestion]:
        if 0 <= self.current_question_index < len(self.quiz):
            return self.quiz[self.current_question_index]
        return None

    def is_last_question(self) -> bool:
        return bool(self.quiz) and self.current_question_index == len(self.quiz) - 1

    def unrevealed_examples(self) -> List[CodeExample]:
        if not self.lesson:
            return []
        return [
            ex for ex in self.lesson.code_examples
            if ex.title not in self.revealed_example_titles
        ]

    def revealed_examples(self) -> List[CodeExample]:
        if not self.lesson:
            return []
        return [
            ex for ex in self.lesson.code_examples
            if ex.title in self.revealed_example_titles
        ]

    def recent_conversation(self, limit: int = 10) -> Tuple[Message, ...]:
        return self.conversation[-limit:]

    # Copy-on-write helpers

    @staticmethod
    def new_lesson_fields() -> Dict:
        """Field changes that empty the track for a new lesson; only the level survives"""
        blank = Track()
        return {f.name: getattr(blank, f.name) for f in fields(Track) if f.name != 'level'}

    @staticmethod
    def quiz_fields(questions: Sequence[QuizQuestion]) -> Dict:
        """Field changes that install a fresh quiz with empty answer slots"""
        return {
            'quiz': tuple(questions),
            'quiz_answers': tuple(Answer.empty_for(q) for q in questions),
            'current_question_index': 0,
        }

    def to_dict(self) -> Dict:
        return {
            'level': self.level,
            'conversation': [m.to_dict() for m in self.conversation],
            'lesson': self.lesson.to_dict() if self.lesson else None,
            'quiz': [q.to_dict() for q in self.quiz],
            'current_question_index': self.current_question_index,
            'quiz_answers': [a.to_dict() for a in self.quiz_answers],
            'mastery_report': (
                [e.to_dict() for e in self.mastery_report]
                if self.mastery_report is not None else None
            ),
            'revealed_example_titles': list(self.revealed_example_titles),
            'suspended_state': self.suspended_state.value if self.suspended_state else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Track':
        _expect_mapping(data, 'track')
        lesson = data.get('lesson')
        report = data.get('mastery_report')
        suspended = data.get('suspended_state')
        return cls(
            level=data.get('level', DEFAULT_LEVEL),
            conversation=tuple(Message.from_dict(m) for m in data.get('conversation', [])),
            lesson=Lesson.from_dict(lesson) if lesson else None,
            quiz=tuple(QuizQuestion.from_dict(q) for q in data.get('quiz', [])),
            current_question_index=data.get('current_question_index', 0),
            quiz_answers=tuple(Answer.from_dict(a) for a in data.get('quiz_answers', [])),
            mastery_report=(
                tuple(ReportEntry.from_dict(e) for e in report) if report is not None else None
            ),
            revealed_example_titles=tuple(data.get('revealed_example_titles', [])),
            suspended_state=AppState(suspended) if suspended else None,
        )


@dataclass(frozen=True)
class Profile:
    """A learner save slot; owns one Track per language it has selected"""
    id: str
    name: str
    state: AppState = AppState.SELECTING_LANGUAGE  # One state per profile, not per track
    active_language: Optional[str] = None
    tracks: Dict[str, Track] = field(default_factory=dict)

    @property
    def active_track(self) -> Optional[Track]:
        if self.active_language is None:
            return None
        return self.tracks.get(self.active_language)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'state': self.state.value,
            'active_language': self.active_language,
            'tracks': {lang: track.to_dict() for lang, track in self.tracks.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Profile':
        _expect_mapping(data, 'profile')
        tracks = _expect_mapping(data.get('tracks', {}), 'tracks')
        return cls(
            id=data['id'],
            name=data['name'],
            state=AppState(data.get('state', AppState.SELECTING_LANGUAGE.value)),
            active_language=data.get('active_language'),
            tracks={
                lang: Track.from_dict(track)
                for lang, track in tracks.items()
            },
        )
