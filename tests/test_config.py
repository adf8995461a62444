#!/usr/bin/env python3
"""
Tests for configuration, provider selection and logging setup.
"""

import logging
import os
from unittest.mock import Mock, patch

import pytest

from codementor import config
from codementor.llm import (
    PROVIDERS,
    OpenAIClient,
    create_llm_client,
    get_available_providers,
    get_preferred_provider,
)
from codementor.log import PACKAGE_LOGGER, configure_logging


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point config at a temp dir and clear provider keys from the environment"""
    monkeypatch.setenv(config.HOME_ENV_VAR, str(tmp_path / 'home'))
    for info in PROVIDERS.values():
        monkeypatch.delenv(info['env_var'], raising=False)
    return tmp_path / 'home'


class TestConfigFile:
    """JSON config in the codementor home directory"""

    def test_home_override(self, isolated_home):
        assert config.get_config_dir() == isolated_home
        assert isolated_home.is_dir()
        assert config.get_config_path() == isolated_home / 'config.json'

    def test_empty_config(self):
        assert config.load_config() == {}
        assert config.get_config_value('missing', 'default') == 'default'

    def test_set_and_get(self):
        config.set_config_value('model', 'gpt-4o-mini')
        assert config.get_config_value('model') == 'gpt-4o-mini'
        assert config.get_config_path().stat().st_mode & 0o777 == 0o600

    def test_unreadable_config(self, caplog):
        """A corrupt file is ignored with a warning"""
        config.get_config_path().write_text('{oops')
        with caplog.at_level(logging.WARNING):
            assert config.load_config() == {}

    def test_db_path(self, isolated_home, tmp_path):
        assert config.get_db_path() == isolated_home / 'profiles.db'
        config.set_config_value('db_path', str(tmp_path / 'elsewhere.db'))
        assert config.get_db_path() == tmp_path / 'elsewhere.db'

    def test_non_object_config(self):
        config.get_config_path().write_text('[1, 2]')
        assert config.load_config() == {}

    def test_update_config(self):
        """Several values in one write; None removes a key"""
        config.save_config({'model': 'x', 'log_level': 'DEBUG'})
        config.update_config({'model': None, 'preferred_provider': 'openai'})
        assert config.load_config() == {'log_level': 'DEBUG', 'preferred_provider': 'openai'}


class TestApiKeys:
    """Storing and clearing provider keys"""

    def test_clear_one_key(self):
        config.save_config({'openai_api_key': 'sk-test', 'gemini_api_key': 'AIza', 'model': 'x'})
        assert config.clear_api_key('openai') == ['openai']
        assert config.load_config() == {'gemini_api_key': 'AIza', 'model': 'x'}

    def test_clear_all_keys(self):
        """Preferred provider is forgotten with its key"""
        config.save_config({
            'openai_api_key': 'sk-test',
            'anthropic_api_key': 'sk-ant-test',
            'preferred_provider': 'openai',
        })
        assert sorted(config.clear_api_key()) == ['anthropic', 'openai']
        assert config.load_config() == {}

    def test_clear_nothing_stored(self):
        assert config.clear_api_key('gemini') == []
        assert not config.get_config_path().exists()

    def test_prompt_saves_key(self):
        """A confirmed key is stored and its provider becomes preferred"""
        with patch('codementor.config.Prompt.ask', return_value=' sk-abc '), \
                patch('codementor.config.Confirm.ask', return_value=True):
            key = config.prompt_for_api_key('openai', console=Mock())

        assert key == 'sk-abc'
        assert config.configured_providers() == ['openai']
        assert config.get_config_value('preferred_provider') == 'openai'

    def test_prompt_session_only(self):
        """Declining to save keeps the key in the environment only"""
        with patch.dict(os.environ), \
                patch('codementor.config.Prompt.ask', return_value='sk-abc'), \
                patch('codementor.config.Confirm.ask', return_value=False):
            config.prompt_for_api_key('openai', console=Mock())
            assert os.environ['OPENAI_API_KEY'] == 'sk-abc'
            assert get_available_providers() == ['openai']

        assert config.load_config() == {}

    def test_prompt_blank_key(self):
        with patch('codementor.config.Prompt.ask', return_value=''):
            assert config.prompt_for_api_key('openai', console=Mock()) is None
        assert config.load_config() == {}

    def test_prompt_for_model(self):
        with patch('codementor.config.Prompt.ask', return_value='gpt-4o-mini'):
            assert config.prompt_for_model(console=Mock()) == 'gpt-4o-mini'
        assert config.get_config_value('model') == 'gpt-4o-mini'

        with patch('codementor.config.Prompt.ask', return_value=''):
            assert config.prompt_for_model(console=Mock()) is None
        assert config.get_config_value('model') is None


class TestProviderSelection:
    """Which LLM provider gets used"""

    def test_none_configured(self):
        assert get_available_providers() == []
        assert get_preferred_provider() is None
        assert create_llm_client() is None

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv('OPENAI_API_KEY', 'sk-env')
        assert get_available_providers() == ['openai']
        assert get_preferred_provider() == 'openai'

    def test_preferred_from_config(self, monkeypatch):
        monkeypatch.setenv('OPENAI_API_KEY', 'sk-env')
        config.save_config({'gemini_api_key': 'AIza-test', 'preferred_provider': 'gemini'})
        assert get_preferred_provider() == 'gemini'

    def test_create_client(self, monkeypatch):
        """Client built with the stored key and configured model"""
        monkeypatch.setenv('ANTHROPIC_API_KEY', 'sk-ant-test')
        config.set_config_value('model', 'claude-test')
        client_class = Mock()
        with patch.dict(PROVIDERS['anthropic'], {'client_class': client_class}):
            client = create_llm_client()

        client_class.assert_called_once_with(api_key='sk-ant-test', model='claude-test')
        assert client is client_class.return_value

    def test_create_client_failure(self, monkeypatch):
        """SDK construction errors give no client rather than a crash"""
        monkeypatch.setenv('ANTHROPIC_API_KEY', 'sk-ant-test')
        client_class = Mock(side_effect=ImportError('no sdk'))
        with patch.dict(PROVIDERS['anthropic'], {'client_class': client_class}):
            assert create_llm_client('anthropic') is None

    def test_unknown_provider(self):
        assert create_llm_client('nope') is None


class TestOpenAIClient:
    """System prompt handling for chat-completions style APIs"""

    def test_system_prompt_prepended(self):
        with patch('openai.OpenAI') as openai_class:
            client = OpenAIClient(api_key='sk-test')
        completion = Mock()
        completion.choices = [Mock(message=Mock(content='hello'))]
        completion.usage = None
        client.client.chat.completions.create.return_value = completion

        response = client.create([{'role': 'user', 'content': 'hi'}], system='Be brief')

        sent = client.client.chat.completions.create.call_args.kwargs['messages']
        assert sent[0] == {'role': 'system', 'content': 'Be brief'}
        assert response.content == 'hello'
        assert response.provider == 'openai'
        openai_class.assert_called_once_with(api_key='sk-test')


class TestLogging:
    """Rich handler on the package logger"""

    def teardown_method(self):
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.handlers = []
        package_logger.propagate = True
        package_logger.setLevel(logging.NOTSET)

    def test_configure_once(self):
        """Repeated calls keep a single handler"""
        configure_logging('INFO')
        package_logger = configure_logging('DEBUG')
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.DEBUG

    def test_default_level(self):
        assert configure_logging().level == logging.WARNING
        assert configure_logging('nonsense').level == logging.WARNING
