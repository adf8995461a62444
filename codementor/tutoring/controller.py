#!/usr/bin/env python3
"""
ProgressionController - orchestrates the lesson → quiz → results loop.

Drives the active profile's track through its states by calling the content
provider and committing results to the profile store. Each step commits its
field changes in one store write; on a provider failure only a notice is
written and the state stays where it is (or takes the documented fallback).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from . import prompts
from .languages import get_language, language_label
from .provider import ContentProvider, ProviderError, TutoringSession, history_from_conversation
from .state import (
    AppState,
    Answer,
    Message,
    Profile,
    QuizQuestion,
    Speaker,
    Track,
    VocabDefinition,
)
from .store import ProfileStore

logger = logging.getLogger(__name__)


START_LESSON_ERROR = "Sorry, I encountered an error setting up the lesson. Please try again."
NEXT_LESSON_ERROR = "Sorry, I encountered an error setting up the next lesson. Please try again."
TUTOR_REPLY_ERROR = "I'm having a little trouble responding right now. Can you try asking again?"
QUIZ_ERROR = "I had trouble creating the quiz. Let's continue the lesson for now."
EVALUATION_ERROR = "I had trouble evaluating that answer."
REPORT_ERROR = "That's the end of the quiz! I couldn't put together your mastery report this time."
QUIZ_INTRO = "Great! Let's test your knowledge. Here is the first one:"
NEXT_QUESTION_INTRO = "Next question:"
QUIZ_END_MESSAGE = "That's the end of the quiz! Here is a summary of your performance."
REVISIT_MESSAGE = (
    "Alright, let's go over that lesson again. Looking at your quiz results, you might "
    "want to focus on a few areas. What would you like to review first?"
)
PREPARING_NEXT_LESSON = "Great work! Let's prepare your next lesson..."

RECENT_MESSAGES_FOR_QUIZ = 10


def format_question(question: QuizQuestion) -> str:
    """Question text followed by lettered options when it is multiple-choice"""
    if not question.options:
        return question.text
    lettered = '\n'.join(
        f"{chr(ord('A') + i)}. {option}" for i, option in enumerate(question.options)
    )
    return f"{question.text}\n\n{lettered}"


def resolve_choice(question: Optional[QuizQuestion], text: str) -> str:
    """Map a lone option letter (e.g. 'b') to that option's text"""
    text = text.strip()
    if question is None or not question.options or len(text) != 1 or not text.isalpha():
        return text
    index = ord(text.upper()) - ord('A')
    if 0 <= index < len(question.options):
        return question.options[index]
    return text


@dataclass(frozen=True)
class Ticket:
    """Identity of the track and state a provider request was issued for"""
    profile_id: str
    language: str
    state: AppState

    @property
    def key(self) -> Tuple[str, str]:
        return (self.profile_id, self.language)


class ProgressionController:
    """Owns every state transition of the active profile's track"""

    def __init__(self, store: ProfileStore, provider: ContentProvider):
        self.store = store
        self.provider = provider
        self.busy = False
        self._sessions: Dict[Tuple[str, str], TutoringSession] = {}

    # =========================================================================
    # What the presentation layer reads
    # =========================================================================

    @property
    def profiles(self) -> List[Profile]:
        return self.store.profiles

    @property
    def active_profile(self) -> Optional[Profile]:
        return self.store.active_profile

    @property
    def active_track(self) -> Optional[Track]:
        return self.store.active_track

    @property
    def active_language(self) -> Optional[str]:
        profile = self.store.active_profile
        return profile.active_language if profile else None

    @property
    def app_state(self) -> AppState:
        profile = self.store.active_profile
        return profile.state if profile else AppState.SELECTING_LANGUAGE

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _ticket(self) -> Optional[Ticket]:
        profile = self.store.active_profile
        if profile is None or profile.active_language is None:
            return None
        return Ticket(profile.id, profile.active_language, profile.state)

    def _track(self, ticket: Ticket) -> Track:
        return self.store.get_track(ticket.profile_id, ticket.language) or Track()

    def _is_stale(self, ticket: Ticket) -> bool:
        """True when the learner moved to another profile, track or state meanwhile"""
        current = self._ticket()
        if current == ticket:
            return False
        logger.warning(
            "Discarding response for %s/%s (%s): active is now %s",
            ticket.profile_id, ticket.language, ticket.state.value,
            f"{current.profile_id}/{current.language} ({current.state.value})" if current else 'none',
        )
        return True

    def _commit(self, ticket: Ticket, state: Optional[AppState] = None, **fields) -> Track:
        if state is not None and state != ticket.state:
            logger.info(
                "%s/%s: %s -> %s", ticket.profile_id, ticket.language,
                ticket.state.value, state.value,
            )
        return self.store.commit(ticket.profile_id, ticket.language, state=state, **fields)

    @contextmanager
    def _pending(self):
        """Marks a provider request as outstanding"""
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    def _label(self, ticket: Ticket) -> str:
        return language_label(ticket.language)

    def _session_for(self, ticket: Ticket, track: Track) -> TutoringSession:
        """Live tutoring session for the track, reopened from the stored lesson if needed"""
        session = self._sessions.get(ticket.key)
        if session is None:
            logger.info("Reopening tutoring session for %s/%s", *ticket.key)
            session = self.provider.open_tutoring_session(
                self._label(ticket),
                track.lesson,
                track.level,
                history=history_from_conversation(track.conversation),
            )
            self._sessions[ticket.key] = session
        return session

    # =========================================================================
    # Menu
    # =========================================================================

    def select_profile(self, profile_id: str) -> Profile:
        return self.store.select_profile(profile_id)

    def create_profile(self, name: Optional[str] = None) -> Profile:
        return self.store.create_profile(name)

    def select_language(self, language: str) -> Optional[Track]:
        """Pick the track to work on; only allowed from the menu"""
        profile = self.store.active_profile
        if profile is None:
            return None
        if profile.state != AppState.SELECTING_LANGUAGE:
            logger.warning("Ignoring language change while %s", profile.state.value)
            return None
        option = get_language(language)
        if option is None:
            raise ValueError(f"Unknown language: {language}")
        return self.store.select_language(profile.id, option.value)

    def update_level(self, level: str) -> Optional[Track]:
        ticket = self._ticket()
        level = level.strip()
        if ticket is None or not level:
            return None
        return self._commit(ticket, level=level)

    # =========================================================================
    # Lesson
    # =========================================================================

    def start_lesson(self) -> bool:
        """Generate a fresh lesson for the selected language and open the tutor"""
        ticket = self._ticket()
        if ticket is None or ticket.state != AppState.SELECTING_LANGUAGE:
            return False

        track = self._commit(ticket, **Track.new_lesson_fields())
        self._sessions.pop(ticket.key, None)

        with self._pending():
            try:
                lesson = self.provider.generate_lesson(self._label(ticket), track.level)
                session = self.provider.open_tutoring_session(
                    self._label(ticket), lesson, track.level
                )
                greeting = session.send(prompts.BEGIN_LESSON_MESSAGE)
            except ProviderError as e:
                logger.error("Failed to start new lesson: %s", e)
                if not self._is_stale(ticket):
                    self._commit(ticket, conversation=(Message(Speaker.TUTOR, START_LESSON_ERROR),))
                return False

        if self._is_stale(ticket):
            return False

        self._sessions[ticket.key] = session
        self._commit(
            ticket,
            state=AppState.IN_LESSON,
            lesson=lesson,
            conversation=(Message(Speaker.TUTOR, greeting),),
        )
        return True

    def send_message(self, text: str) -> bool:
        """Relay free text to the tutor during a lesson"""
        text = text.strip()
        if not text or self.busy:
            return False
        ticket = self._ticket()
        if ticket is None or ticket.state != AppState.IN_LESSON:
            return False
        track = self._track(ticket)
        if track.lesson is None:
            return False

        with self._pending():
            try:
                session = self._session_for(ticket, track)
                reply = session.send(text)
            except ProviderError as e:
                logger.error("Failed to get tutor response: %s", e)
                if not self._is_stale(ticket):
                    self._commit(
                        ticket,
                        conversation=track.conversation + (Message(Speaker.TUTOR, TUTOR_REPLY_ERROR),),
                    )
                return False

        if self._is_stale(ticket):
            return False

        self._commit(
            ticket,
            conversation=track.conversation + (
                Message(Speaker.USER, text),
                Message(Speaker.TUTOR, reply),
            ),
        )

        if prompts.QUIZ_START_PHRASE in reply:
            self._start_quiz(ticket)
        else:
            self._reveal_examples(ticket, reply)
        return True

    def _start_quiz(self, ticket: Ticket):
        track = self._track(ticket)
        recent = track.recent_conversation(RECENT_MESSAGES_FOR_QUIZ)

        with self._pending():
            try:
                questions = self.provider.generate_quiz(track.lesson.objectives, recent)
            except ProviderError as e:
                logger.error("Failed to generate quiz: %s", e)
                if not self._is_stale(ticket):
                    self._commit(
                        ticket,
                        conversation=track.conversation + (Message(Speaker.SYSTEM_NOTICE, QUIZ_ERROR),),
                    )
                return

        if self._is_stale(ticket):
            return

        notice = Message(
            Speaker.SYSTEM_NOTICE,
            f"{QUIZ_INTRO}\n\n{format_question(questions[0])}",
        )
        self._commit(
            ticket,
            state=AppState.IN_QUIZ,
            conversation=track.conversation + (notice,),
            **Track.quiz_fields(questions)
        )

    def _reveal_examples(self, ticket: Ticket, tutor_text: str):
        """Unlock the code example the tutor just talked about, if any"""
        track = self._track(ticket)
        candidates = track.unrevealed_examples()
        if not candidates:
            return

        with self._pending():
            try:
                decision = self.provider.analyze_for_reveal(
                    tutor_text, candidates, track.revealed_example_titles
                )
            except ProviderError as e:
                logger.warning("Reveal analysis failed: %s", e)
                return

        if not decision.should_reveal or self._is_stale(ticket):
            return

        track = self._track(ticket)
        title = decision.example_title
        if title not in {ex.title for ex in track.unrevealed_examples()}:
            logger.info("Ignoring reveal of %r: not an unrevealed example", title)
            return
        self._commit(ticket, revealed_example_titles=track.revealed_example_titles + (title,))

    # =========================================================================
    # Quiz
    # =========================================================================

    def submit_answer(self, answer: str) -> bool:
        """Record and score the answer to the current question"""
        answer = answer.strip()
        if not answer or self.busy:
            return False
        ticket = self._ticket()
        if ticket is None or ticket.state != AppState.IN_QUIZ:
            return False
        track = self._track(ticket)
        question = track.current_question()
        if question is None:
            return False

        index = track.current_question_index
        slot = track.quiz_answers[index]
        is_last = track.is_last_question()

        with self._pending():
            try:
                evaluation = self.provider.evaluate_answer(slot.objective, question.text, answer)
                verdict = 'Correct!' if evaluation.is_correct else 'Not quite.'
                feedback = f"{verdict} {evaluation.feedback}"
            except ProviderError as e:
                logger.error("Failed to evaluate answer: %s", e)
                evaluation = None
                feedback = EVALUATION_ERROR if is_last else (
                    f"{EVALUATION_ERROR} Let's move to the next question."
                )

        if self._is_stale(ticket):
            return False

        answers = list(track.quiz_answers)
        answers[index] = replace(slot, answer=answer, evaluation=evaluation)
        conversation = track.conversation + (
            Message(Speaker.USER, answer),
            Message(Speaker.SYSTEM_NOTICE, feedback),
        )

        if not is_last:
            next_question = track.quiz[index + 1]
            conversation += (
                Message(Speaker.SYSTEM_NOTICE, f"{NEXT_QUESTION_INTRO}\n\n{format_question(next_question)}"),
            )
            self._commit(
                ticket,
                conversation=conversation,
                quiz_answers=tuple(answers),
                current_question_index=index + 1,
            )
            return True

        self._commit(ticket, conversation=conversation, quiz_answers=tuple(answers))
        self._finish_quiz(ticket)
        return True

    def _finish_quiz(self, ticket: Ticket):
        track = self._track(ticket)
        results = mastery_inputs(track.quiz_answers)

        with self._pending():
            try:
                report = tuple(self.provider.generate_mastery_report(results))
                closing = QUIZ_END_MESSAGE
            except ProviderError as e:
                logger.error("Failed to generate mastery report: %s", e)
                report = None
                closing = REPORT_ERROR

        if self._is_stale(ticket):
            return

        self._commit(
            ticket,
            state=AppState.SHOWING_RESULTS,
            mastery_report=report,
            conversation=track.conversation + (Message(Speaker.SYSTEM_NOTICE, closing),),
        )

    # =========================================================================
    # Results
    # =========================================================================

    def revisit_lesson(self) -> bool:
        """Drop the finished quiz and go back to talking about the same lesson"""
        ticket = self._ticket()
        if ticket is None or ticket.state != AppState.SHOWING_RESULTS:
            return False
        track = self._track(ticket)
        self._commit(
            ticket,
            state=AppState.IN_LESSON,
            quiz=(),
            quiz_answers=(),
            current_question_index=0,
            conversation=track.conversation + (Message(Speaker.TUTOR, REVISIT_MESSAGE),),
        )
        return True

    def next_lesson(self) -> bool:
        """Move on to a lesson that builds on the one just finished"""
        ticket = self._ticket()
        if ticket is None or ticket.state != AppState.SHOWING_RESULTS:
            return False
        track = self._track(ticket)
        if track.lesson is None:
            return False
        previous_topic = track.lesson.topic

        # Optimistic: show the lesson view straight away while the lesson is generated
        self._commit(
            ticket,
            state=AppState.IN_LESSON,
            conversation=(Message(Speaker.TUTOR, PREPARING_NEXT_LESSON),),
            mastery_report=None,
            quiz=(),
            quiz_answers=(),
            current_question_index=0,
            revealed_example_titles=(),
        )
        ticket = replace(ticket, state=AppState.IN_LESSON)
        self._sessions.pop(ticket.key, None)

        with self._pending():
            try:
                lesson = self.provider.generate_next_lesson(self._label(ticket), previous_topic)
                session = self.provider.open_tutoring_session(
                    self._label(ticket), lesson, prompts.NEXT_LESSON_LEVEL
                )
                greeting = session.send(prompts.BEGIN_LESSON_MESSAGE)
            except ProviderError as e:
                logger.error("Failed to start next lesson: %s", e)
                if not self._is_stale(ticket):
                    self._commit(ticket, conversation=(Message(Speaker.TUTOR, NEXT_LESSON_ERROR),))
                return False

        if self._is_stale(ticket):
            return False

        self._sessions[ticket.key] = session
        self._commit(ticket, lesson=lesson, conversation=(Message(Speaker.TUTOR, greeting),))
        return True

    # =========================================================================
    # Exit / continue
    # =========================================================================

    def exit_to_menu(self) -> bool:
        """Leave a lesson or quiz, remembering where the learner was"""
        ticket = self._ticket()
        if ticket is None or ticket.state not in (AppState.IN_LESSON, AppState.IN_QUIZ):
            return False
        self._commit(ticket, state=AppState.SELECTING_LANGUAGE, suspended_state=ticket.state)
        return True

    def continue_track(self) -> bool:
        """Resume the suspended lesson or quiz; a no-op when nothing is suspended"""
        ticket = self._ticket()
        if ticket is None or ticket.state != AppState.SELECTING_LANGUAGE:
            return False
        track = self._track(ticket)
        if track.suspended_state is None:
            return False
        self._commit(ticket, state=track.suspended_state, suspended_state=None)
        return True

    # =========================================================================
    # Vocabulary
    # =========================================================================

    def request_vocab_definition(self, word: str) -> VocabDefinition:
        """Define a lesson term; falls back to a placeholder entry on failure"""
        word = word.strip()
        ticket = self._ticket()
        language = self._label(ticket) if ticket else ''
        with self._pending():
            try:
                return self.provider.define_vocabulary(word, language)
            except ProviderError as e:
                logger.error("Failed to get vocab definition: %s", e)
                return VocabDefinition.placeholder(word)


def mastery_inputs(answers: Sequence[Answer]) -> List[Dict]:
    """Per-answer scores for the report; unscored answers count as 1 / incorrect"""
    return [
        {
            'objective': a.objective,
            'score': a.evaluation.mastery_score if a.evaluation else 1,
            'is_correct': a.evaluation.is_correct if a.evaluation else False,
        }
        for a in answers
    ]
