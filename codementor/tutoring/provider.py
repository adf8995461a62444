#!/usr/bin/env python3
"""
Content provider: the model-backed side of the tutoring loop.

Builds prompts, calls the configured LLM, pulls JSON out of the reply and
validates it. Callers only ever receive typed domain objects or a
``ProviderError``; an unchecked payload never leaves this module.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from ..llm import BaseLLMClient
from . import prompts
from .schemas import (
    LessonPayload,
    RevealPayload,
    EvaluationPayload,
    VocabPayload,
    QUIZ_ADAPTER,
    REPORT_ADAPTER,
    describe_schema,
)
from .state import (
    CodeExample,
    Evaluation,
    Lesson,
    Message,
    QuizQuestion,
    ReportEntry,
    Speaker,
    VocabDefinition,
)

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Any failure to get usable content from the model"""


class TransientProviderError(ProviderError):
    """Network, SDK or model failure, or no model configured"""


class MalformedResponseError(ProviderError):
    """The model replied, but not with something matching the requested schema"""


@dataclass(frozen=True)
class RevealDecision:
    should_reveal: bool
    example_title: Optional[str] = None


def extract_json(text: str) -> Any:
    """Parse JSON from a model reply, tolerating markdown code fences"""
    candidate = text.strip()
    if '```json' in candidate:
        match = re.search(r'```json\s*(.*?)\s*```', candidate, re.DOTALL)
        if match:
            candidate = match.group(1)
    elif '```' in candidate:
        match = re.search(r'```\s*(.*?)\s*```', candidate, re.DOTALL)
        if match:
            candidate = match.group(1)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Failed to parse JSON response: {e}") from e


def validate_payload(schema, data: Any):
    """Validate parsed JSON against a pydantic model or TypeAdapter"""
    try:
        if isinstance(schema, TypeAdapter):
            return schema.validate_python(data)
        return schema.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(
            f"Response did not match schema ({e.error_count()} errors)"
        ) from e


def history_from_conversation(conversation: Sequence[Message]) -> List[Dict[str, str]]:
    """
    Rebuild chat history for a reopened tutoring session.

    The stored conversation starts with the tutor's greeting, so the begin
    message is put back in front of it. Notices are not part of the chat, and
    consecutive turns from the same side are merged so roles alternate.
    """
    history = [{'role': 'user', 'content': prompts.BEGIN_LESSON_MESSAGE}]
    for message in conversation:
        if message.speaker == Speaker.SYSTEM_NOTICE:
            continue
        role = 'user' if message.speaker == Speaker.USER else 'assistant'
        if history[-1]['role'] == role:
            history[-1] = {'role': role, 'content': history[-1]['content'] + '\n\n' + message.text}
        else:
            history.append({'role': role, 'content': message.text})
    if len(history) == 1:
        return []
    return history


class TutoringSession:
    """A running lesson conversation with the model"""

    def __init__(
        self,
        provider: 'ContentProvider',
        system_prompt: str,
        history: Optional[List[Dict[str, str]]] = None,
    ):
        self.provider = provider
        self.system_prompt = system_prompt
        self.history: List[Dict[str, str]] = list(history or [])

    def send(self, text: str) -> str:
        """Send a learner message and return the tutor's reply"""
        messages = self.history + [{'role': 'user', 'content': text}]
        reply = self.provider.complete(messages, system=self.system_prompt)
        # History only grows once the exchange succeeded
        self.history = messages + [{'role': 'assistant', 'content': reply}]
        return reply


class ContentProvider:
    """Generates lessons, quizzes, evaluations and reports through an LLM"""

    QUIZ_LENGTH = 4

    def __init__(self, llm: Optional[BaseLLMClient], max_tokens: int = 2000):
        self.llm = llm
        self.max_tokens = max_tokens

    def is_available(self) -> bool:
        return self.llm is not None

    # =========================================================================
    # LLM helpers
    # =========================================================================

    def complete(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Make a model call and return the reply text"""
        if self.llm is None:
            raise TransientProviderError("No LLM provider configured. Run 'codementor --setup'.")

        started = time.perf_counter()
        try:
            response = self.llm.create(
                messages=messages,
                system=system,
                max_tokens=max_tokens or self.max_tokens,
            )
        except Exception as e:
            logger.warning("%s call failed: %s", self.llm.provider, e)
            raise TransientProviderError(str(e)) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug("Response from %s/%s (%.0fms)", response.provider, response.model, elapsed_ms)

        text = (response.content or '').strip()
        if not text:
            raise MalformedResponseError("Empty response from model")
        return text

    def request_json(self, prompt: str, schema, max_tokens: Optional[int] = None):
        """Single-turn call whose reply must validate against ``schema``"""
        text = self.complete([{'role': 'user', 'content': prompt}], max_tokens=max_tokens)
        return validate_payload(schema, extract_json(text))

    # =========================================================================
    # Lessons
    # =========================================================================

    def generate_lesson(self, language: str, level: str) -> Lesson:
        prompt = prompts.LESSON_PROMPT.format(
            language=language,
            level=level,
            schema=describe_schema(LessonPayload),
        )
        payload: LessonPayload = self.request_json(prompt, LessonPayload, max_tokens=4000)
        return payload.to_lesson()

    def generate_next_lesson(self, language: str, previous_topic: str) -> Lesson:
        prompt = prompts.NEXT_LESSON_PROMPT.format(
            language=language,
            previous_topic=previous_topic,
            schema=describe_schema(LessonPayload),
        )
        payload: LessonPayload = self.request_json(prompt, LessonPayload, max_tokens=4000)
        return payload.to_lesson()

    def open_tutoring_session(
        self,
        language: str,
        lesson: Lesson,
        level: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> TutoringSession:
        system_prompt = prompts.TUTOR_SYSTEM_PROMPT.format(
            language=language,
            level=level,
            topic=lesson.topic,
            lesson_content=lesson.body,
            quiz_start_phrase=prompts.QUIZ_START_PHRASE,
        )
        return TutoringSession(self, system_prompt, history)

    def analyze_for_reveal(
        self,
        tutor_text: str,
        candidates: Sequence[CodeExample],
        exclude_titles: Sequence[str],
    ) -> RevealDecision:
        """Decide whether the tutor's message covers one of the unrevealed examples"""
        available = [ex.title for ex in candidates if ex.title not in exclude_titles]
        if not available:
            return RevealDecision(should_reveal=False)

        prompt = prompts.REVEAL_PROMPT.format(
            tutor_message=tutor_text,
            titles=json.dumps(available),
            schema=describe_schema(RevealPayload),
        )
        payload: RevealPayload = self.request_json(prompt, RevealPayload, max_tokens=300)

        if payload.should_reveal and payload.example_title in available:
            return RevealDecision(should_reveal=True, example_title=payload.example_title)
        if payload.should_reveal:
            logger.info("Ignoring reveal of unknown example %r", payload.example_title)
        return RevealDecision(should_reveal=False)

    # =========================================================================
    # Quiz
    # =========================================================================

    def generate_quiz(
        self,
        objectives: Sequence[str],
        recent_conversation: Sequence[Message],
    ) -> List[QuizQuestion]:
        prompt = prompts.QUIZ_PROMPT.format(
            count=self.QUIZ_LENGTH,
            objectives='\n- '.join(objectives),
            conversation=json.dumps([m.to_dict() for m in recent_conversation], indent=2),
            schema=describe_schema(QUIZ_ADAPTER),
        )
        payloads = self.request_json(prompt, QUIZ_ADAPTER, max_tokens=3000)
        return [payload.to_question() for payload in payloads]

    def evaluate_answer(self, objective: str, question: str, answer: str) -> Evaluation:
        prompt = prompts.EVALUATE_ANSWER_PROMPT.format(
            objective=objective,
            question=question,
            answer=answer,
            schema=describe_schema(EvaluationPayload),
        )
        payload: EvaluationPayload = self.request_json(prompt, EvaluationPayload, max_tokens=800)
        return payload.to_evaluation()

    def generate_mastery_report(self, results: Sequence[Dict]) -> List[ReportEntry]:
        """
        Summarise quiz results per objective.

        Args:
            results: One dict per answer with 'objective', 'score' and 'is_correct'.

        Returns:
            One entry per distinct objective, in the order the model returned them.
        """
        prompt = prompts.MASTERY_REPORT_PROMPT.format(
            results=json.dumps(list(results), indent=2),
            schema=describe_schema(REPORT_ADAPTER),
        )
        payloads = self.request_json(prompt, REPORT_ADAPTER, max_tokens=2000)

        entries: Dict[str, ReportEntry] = {}
        for payload in payloads:
            entries.setdefault(payload.objective, payload.to_entry())
        return list(entries.values())

    # =========================================================================
    # Vocabulary
    # =========================================================================

    def define_vocabulary(self, word: str, language: str) -> VocabDefinition:
        prompt = prompts.VOCABULARY_PROMPT.format(
            word=word,
            language=language,
            schema=describe_schema(VocabPayload),
        )
        payload: VocabPayload = self.request_json(prompt, VocabPayload, max_tokens=800)
        return payload.to_definition()
