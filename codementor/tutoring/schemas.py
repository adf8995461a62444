#!/usr/bin/env python3
"""
Response schemas for model-generated content.

The model is shown the JSON schema of each payload and asked to conform, but
nothing guarantees it will. Replies are validated against these models before
being converted into the frozen domain types in ``state``.
"""

import json
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, TypeAdapter

from .state import CodeExample, Evaluation, Lesson, QuizQuestion, ReportEntry, VocabDefinition


class CodeExamplePayload(BaseModel):
    title: str = Field(min_length=1)
    code: str


class LessonPayload(BaseModel):
    topic: str = Field(min_length=1)
    lesson_content: str = Field(min_length=1)
    learning_objectives: List[str] = Field(min_length=1)
    code_examples: List[CodeExamplePayload] = Field(default_factory=list)
    key_vocabulary: List[str] = Field(default_factory=list)

    def to_lesson(self) -> Lesson:
        # Titles identify examples for reveal tracking, so keep the first of any duplicate
        examples = {}
        for ex in self.code_examples:
            examples.setdefault(ex.title, CodeExample(title=ex.title, code=ex.code))
        return Lesson(
            topic=self.topic,
            body=self.lesson_content,
            objectives=tuple(self.learning_objectives),
            code_examples=tuple(examples.values()),
            vocabulary=tuple(self.key_vocabulary),
        )


class QuizQuestionPayload(BaseModel):
    question_text: str = Field(min_length=1)
    related_objective: str
    options: Optional[List[str]] = Field(
        default=None,
        description="Multiple-choice options, ONLY for multiple-choice questions. Omit otherwise.",
    )

    def to_question(self) -> QuizQuestion:
        return QuizQuestion(
            text=self.question_text,
            related_objective=self.related_objective,
            options=tuple(self.options) if self.options else None,
        )


class RevealPayload(BaseModel):
    should_reveal: bool
    example_title: Optional[str] = None


class EvaluationPayload(BaseModel):
    is_correct: bool
    feedback: str
    mastery_score: float = Field(ge=1, le=10)

    def to_evaluation(self) -> Evaluation:
        return Evaluation(
            is_correct=self.is_correct,
            feedback=self.feedback,
            mastery_score=self.mastery_score,
        )


class ReportEntryPayload(BaseModel):
    objective: str = Field(description="The learning objective being evaluated.")
    final_score: float = Field(ge=1, le=10, description="Mastery score for this objective, 1 to 10.")
    misconceptions: str = Field(
        description="What the student got wrong for this objective. 'None' if all answers were correct."
    )

    def to_entry(self) -> ReportEntry:
        return ReportEntry(
            objective=self.objective,
            final_score=self.final_score,
            misconceptions=self.misconceptions,
        )


class VocabPayload(BaseModel):
    word: str
    definition: str
    example: str

    def to_definition(self) -> VocabDefinition:
        return VocabDefinition(word=self.word, definition=self.definition, example=self.example)


QUIZ_ADAPTER = TypeAdapter(Annotated[List[QuizQuestionPayload], Field(min_length=1)])
REPORT_ADAPTER = TypeAdapter(Annotated[List[ReportEntryPayload], Field(min_length=1)])


def describe_schema(schema) -> str:
    """Render a model class or TypeAdapter as JSON schema text for a prompt"""
    if isinstance(schema, TypeAdapter):
        document = schema.json_schema()
    else:
        document = schema.model_json_schema()
    return json.dumps(document, indent=2)
