#!/usr/bin/env python3
"""
Tests for the content provider: JSON extraction, schema validation and the
tutoring session, all against a mocked LLM client.
"""

import json
from unittest.mock import Mock

import pytest

from codementor.llm import LLMResponse
from codementor.tutoring import prompts
from codementor.tutoring.provider import (
    ContentProvider,
    MalformedResponseError,
    TransientProviderError,
    TutoringSession,
    extract_json,
    history_from_conversation,
)
from codementor.tutoring.state import CodeExample, Lesson, Message, Speaker


def mock_llm(*replies):
    """LLM client mock answering with the given texts in order"""
    llm = Mock()
    llm.provider = 'anthropic'
    llm.model_name = 'test-model'
    llm.create = Mock(side_effect=[
        LLMResponse(content=r, model='test-model', provider='anthropic') for r in replies
    ])
    return llm


LESSON_JSON = json.dumps({
    'topic': 'Variables',
    'lesson_content': 'Variables hold values.',
    'learning_objectives': ['Declare a variable', 'Reassign a variable'],
    'code_examples': [
        {'title': 'Declaring', 'code': 'x = 1'},
        {'title': 'Reassigning', 'code': 'x = 2'},
        {'title': 'Declaring', 'code': 'duplicate'},
    ],
    'key_vocabulary': ['variable', 'assignment'],
})


class TestExtractJson:
    """Pulling JSON out of model replies"""

    def test_plain(self):
        assert extract_json('{"a": 1}') == {'a': 1}

    def test_json_fence(self):
        text = 'Here you go:\n```json\n{"a": [1, 2]}\n```\nEnjoy!'
        assert extract_json(text) == {'a': [1, 2]}

    def test_bare_fence(self):
        assert extract_json('```\n[1, 2]\n```') == [1, 2]

    def test_not_json(self):
        with pytest.raises(MalformedResponseError):
            extract_json('Sorry, I cannot help with that.')


class TestHistoryFromConversation:
    """Rebuilding chat history for a reopened session"""

    def test_empty(self):
        assert history_from_conversation([]) == []

    def test_alternating_roles(self):
        """Begin message first, notices dropped, same-side turns merged"""
        conversation = [
            Message(Speaker.TUTOR, 'Welcome!'),
            Message(Speaker.USER, 'Hi'),
            Message(Speaker.USER, 'Are you there?'),
            Message(Speaker.SYSTEM_NOTICE, 'Quiz time'),
            Message(Speaker.TUTOR, 'Yes'),
        ]
        history = history_from_conversation(conversation)
        assert [h['role'] for h in history] == ['user', 'assistant', 'user', 'assistant']
        assert history[0]['content'] == prompts.BEGIN_LESSON_MESSAGE
        assert history[2]['content'] == 'Hi\n\nAre you there?'

    def test_only_notices(self):
        assert history_from_conversation([Message(Speaker.SYSTEM_NOTICE, 'x')]) == []


class TestComplete:
    """Raw model calls"""

    def test_no_llm(self):
        """No client configured is a transient failure"""
        provider = ContentProvider(None)
        assert not provider.is_available()
        with pytest.raises(TransientProviderError):
            provider.complete([{'role': 'user', 'content': 'hi'}])

    def test_sdk_error_wrapped(self):
        """SDK exceptions become TransientProviderError"""
        llm = Mock()
        llm.provider = 'openai'
        llm.create.side_effect = RuntimeError('rate limited')
        with pytest.raises(TransientProviderError, match='rate limited'):
            ContentProvider(llm).complete([{'role': 'user', 'content': 'hi'}])

    def test_empty_reply(self):
        """Blank text is malformed"""
        with pytest.raises(MalformedResponseError):
            ContentProvider(mock_llm('   ')).complete([{'role': 'user', 'content': 'hi'}])

    def test_passes_system_prompt(self):
        llm = mock_llm('ok')
        ContentProvider(llm).complete([{'role': 'user', 'content': 'hi'}], system='Be nice', max_tokens=50)
        kwargs = llm.create.call_args.kwargs
        assert kwargs['system'] == 'Be nice'
        assert kwargs['max_tokens'] == 50


class TestLessons:
    """Lesson generation"""

    def test_generate_lesson(self):
        """Valid JSON becomes a Lesson with unique example titles"""
        llm = mock_llm(f'```json\n{LESSON_JSON}\n```')
        lesson = ContentProvider(llm).generate_lesson('Python', 'a complete beginner')

        assert lesson.topic == 'Variables'
        assert lesson.objectives == ('Declare a variable', 'Reassign a variable')
        assert lesson.example_titles() == ['Declaring', 'Reassigning']
        assert lesson.get_example('Declaring').code == 'x = 1'
        prompt = llm.create.call_args.kwargs['messages'][0]['content']
        assert 'Python' in prompt
        assert 'a complete beginner' in prompt

    def test_generate_next_lesson(self):
        llm = mock_llm(LESSON_JSON)
        ContentProvider(llm).generate_next_lesson('Go', 'Loops')
        prompt = llm.create.call_args.kwargs['messages'][0]['content']
        assert 'Loops' in prompt
        assert 'Go' in prompt

    def test_missing_objectives(self):
        """Schema violations are malformed responses"""
        bad = json.dumps({'topic': 'x', 'lesson_content': 'y', 'learning_objectives': []})
        with pytest.raises(MalformedResponseError):
            ContentProvider(mock_llm(bad)).generate_lesson('Python', 'beginner')


class TestTutoringSession:
    """Multi-turn lesson conversation"""

    def setup_method(self):
        self.lesson = Lesson(topic='Loops', body='For loops repeat.', objectives=('Write a loop',))

    def test_system_prompt(self):
        """System prompt carries the lesson and the quiz phrase"""
        provider = ContentProvider(mock_llm())
        session = provider.open_tutoring_session('Python', self.lesson, 'a complete beginner')
        assert 'For loops repeat.' in session.system_prompt
        assert prompts.QUIZ_START_PHRASE in session.system_prompt
        assert session.history == []

    def test_history_grows_on_success(self):
        llm = mock_llm('Welcome!', 'Good question.')
        session = ContentProvider(llm).open_tutoring_session('Python', self.lesson, 'beginner')

        assert session.send(prompts.BEGIN_LESSON_MESSAGE) == 'Welcome!'
        assert session.send('What is a loop?') == 'Good question.'
        assert len(session.history) == 4
        sent = llm.create.call_args.kwargs['messages']
        assert sent[-1] == {'role': 'user', 'content': 'What is a loop?'}

    def test_history_unchanged_on_failure(self):
        llm = Mock()
        llm.provider = 'anthropic'
        llm.create.side_effect = RuntimeError('boom')
        session = TutoringSession(ContentProvider(llm), 'system', history=[
            {'role': 'user', 'content': 'Begin the lesson.'},
            {'role': 'assistant', 'content': 'Hi'},
        ])
        with pytest.raises(TransientProviderError):
            session.send('hello?')
        assert len(session.history) == 2


class TestReveal:
    """Code example reveal analysis"""

    def setup_method(self):
        self.examples = [CodeExample('Declaring', 'x = 1'), CodeExample('Reassigning', 'x = 2')]

    def test_reveal(self):
        llm = mock_llm('{"should_reveal": true, "example_title": "Reassigning"}')
        decision = ContentProvider(llm).analyze_for_reveal('Now reassign it', self.examples, ['Declaring'])
        assert decision.should_reveal
        assert decision.example_title == 'Reassigning'
        prompt = llm.create.call_args.kwargs['messages'][0]['content']
        assert '"Declaring"' not in prompt

    def test_unknown_title_ignored(self):
        llm = mock_llm('{"should_reveal": true, "example_title": "Loops"}')
        decision = ContentProvider(llm).analyze_for_reveal('text', self.examples, [])
        assert not decision.should_reveal

    def test_nothing_left(self):
        """No call when every example is already revealed"""
        llm = mock_llm()
        decision = ContentProvider(llm).analyze_for_reveal('text', self.examples, ['Declaring', 'Reassigning'])
        assert not decision.should_reveal
        llm.create.assert_not_called()


class TestQuizAndReport:
    """Quiz generation, evaluation and mastery report"""

    def test_generate_quiz(self):
        reply = json.dumps([
            {'question_text': 'What does x = 1 do?', 'related_objective': 'Declare a variable'},
            {'question_text': 'Pick one', 'related_objective': 'Reassign a variable',
             'options': ['a', 'b', 'c']},
        ])
        llm = mock_llm(reply)
        conversation = [Message(Speaker.TUTOR, 'Ready?')]
        quiz = ContentProvider(llm).generate_quiz(['Declare a variable'], conversation)

        assert len(quiz) == 2
        assert quiz[0].options is None
        assert quiz[1].options == ('a', 'b', 'c')
        prompt = llm.create.call_args.kwargs['messages'][0]['content']
        assert 'Ready?' in prompt

    def test_empty_quiz_rejected(self):
        with pytest.raises(MalformedResponseError):
            ContentProvider(mock_llm('[]')).generate_quiz(['x'], [])

    def test_evaluate_answer(self):
        llm = mock_llm('{"is_correct": false, "feedback": "Close.", "mastery_score": 4}')
        evaluation = ContentProvider(llm).evaluate_answer('Declare a variable', 'Q?', 'x == 1')
        assert not evaluation.is_correct
        assert evaluation.feedback == 'Close.'
        assert evaluation.mastery_score == 4

    def test_score_out_of_range(self):
        llm = mock_llm('{"is_correct": true, "feedback": "ok", "mastery_score": 42}')
        with pytest.raises(MalformedResponseError):
            ContentProvider(llm).evaluate_answer('o', 'q', 'a')

    def test_mastery_report_one_entry_per_objective(self):
        reply = json.dumps([
            {'objective': 'A', 'final_score': 9, 'misconceptions': 'None'},
            {'objective': 'B', 'final_score': 3, 'misconceptions': 'Mixes up = and =='},
            {'objective': 'A', 'final_score': 1, 'misconceptions': 'dup'},
        ])
        results = [
            {'objective': 'A', 'score': 9, 'is_correct': True},
            {'objective': 'B', 'score': 3, 'is_correct': False},
        ]
        report = ContentProvider(mock_llm(reply)).generate_mastery_report(results)
        assert [e.objective for e in report] == ['A', 'B']
        assert report[0].final_score == 9
        assert report[1].has_misconceptions()

    def test_define_vocabulary(self):
        llm = mock_llm('{"word": "variable", "definition": "A named value.", "example": "x = 1"}')
        entry = ContentProvider(llm).define_vocabulary('variable', 'Python')
        assert entry.definition == 'A named value.'
