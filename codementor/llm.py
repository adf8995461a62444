#!/usr/bin/env python3
"""
Unified LLM client supporting multiple providers.
Provides a consistent interface across Anthropic, OpenAI, and Google Gemini.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, List

from .config import load_config

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Unified response from any LLM provider"""
    content: str
    model: str
    provider: str
    usage: Optional[Dict[str, int]] = None


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients"""

    provider = ''
    model_name = ''

    @abstractmethod
    def create(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Create a completion from user/assistant messages and an optional system prompt"""
        pass


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client"""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(self, api_key: str, model: str = None):
        from anthropic import Anthropic
        self.client = Anthropic(api_key=api_key)
        self.model_name = model or self.DEFAULT_MODEL
        self.provider = "anthropic"

    def create(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        kwargs = {}
        if system:
            kwargs['system'] = system
        response = self.client.messages.create(
            model=self.model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=messages,
            **kwargs
        )
        return LLMResponse(
            content=response.content[0].text,
            model=self.model_name,
            provider=self.provider,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }
        )


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client"""

    DEFAULT_MODEL = "gpt-4o"

    def __init__(self, api_key: str, model: str = None):
        from openai import OpenAI
        self.client = OpenAI(api_key=api_key)
        self.model_name = model or self.DEFAULT_MODEL
        self.provider = "openai"

    def create(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        if system:
            messages = [{"role": "system", "content": system}] + list(messages)
        response = self.client.chat.completions.create(
            model=self.model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=messages,
        )
        return LLMResponse(
            content=response.choices[0].message.content or '',
            model=self.model_name,
            provider=self.provider,
            usage={
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            } if response.usage else None
        )


class GeminiClient(BaseLLMClient):
    """Google Gemini client"""

    DEFAULT_MODEL = "gemini-2.5-flash"

    def __init__(self, api_key: str, model: str = None):
        import google.generativeai as genai
        genai.configure(api_key=api_key)
        self.genai = genai
        self.model_name = model or self.DEFAULT_MODEL
        self.provider = "gemini"

    def _convert_messages(self, messages: List[Dict[str, str]]) -> List[Dict]:
        """Convert standard messages to Gemini format"""
        gemini_messages = []
        for msg in messages:
            role = "user" if msg["role"] == "user" else "model"
            gemini_messages.append({
                "role": role,
                "parts": [msg["content"]]
            })
        return gemini_messages

    def create(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        # System instructions are bound to the model object in this SDK
        model = self.genai.GenerativeModel(self.model_name, system_instruction=system or None)
        gemini_messages = self._convert_messages(messages)
        generation_config = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }

        if len(gemini_messages) == 1:
            response = model.generate_content(
                messages[0]["content"],
                generation_config=generation_config,
            )
        else:
            chat = model.start_chat(history=gemini_messages[:-1])
            response = chat.send_message(
                gemini_messages[-1]["parts"][0],
                generation_config=generation_config,
            )

        return LLMResponse(
            content=response.text,
            model=self.model_name,
            provider=self.provider,
        )


# Provider registry
PROVIDERS = {
    "anthropic": {
        "client_class": AnthropicClient,
        "env_var": "ANTHROPIC_API_KEY",
        "config_key": "anthropic_api_key",
        "key_prefix": "sk-ant-",
        "display_name": "Anthropic (Claude)",
        "url": "https://console.anthropic.com/settings/keys",
        "package": "anthropic",
    },
    "openai": {
        "client_class": OpenAIClient,
        "env_var": "OPENAI_API_KEY",
        "config_key": "openai_api_key",
        "key_prefix": "sk-",
        "display_name": "OpenAI (GPT-4)",
        "url": "https://platform.openai.com/api-keys",
        "package": "openai",
    },
    "gemini": {
        "client_class": GeminiClient,
        "env_var": "GOOGLE_API_KEY",
        "config_key": "gemini_api_key",
        "key_prefix": "AI",
        "display_name": "Google (Gemini)",
        "url": "https://aistudio.google.com/app/apikey",
        "package": "google-generativeai",
    },
}


def get_available_providers() -> List[str]:
    """Get list of providers with configured API keys"""
    config = load_config()
    available = []
    for provider, info in PROVIDERS.items():
        if os.getenv(info["env_var"]) or config.get(info["config_key"]):
            available.append(provider)
    return available


def get_api_key_for_provider(provider: str) -> Optional[str]:
    """Get API key for a specific provider"""
    if provider not in PROVIDERS:
        return None

    info = PROVIDERS[provider]

    # Check environment variable first
    api_key = os.getenv(info["env_var"])
    if api_key:
        return api_key

    # Check config file
    config = load_config()
    return config.get(info["config_key"])


def get_preferred_provider() -> Optional[str]:
    """Get the user's preferred provider from config, or first available"""
    config = load_config()
    preferred = config.get("preferred_provider")

    if preferred and get_api_key_for_provider(preferred):
        return preferred

    # Fall back to first available
    available = get_available_providers()
    return available[0] if available else None


def create_llm_client(
    provider: str = None,
    model: str = None,
) -> Optional[BaseLLMClient]:
    """
    Create an LLM client for the specified or preferred provider.

    Args:
        provider: Provider name (anthropic, openai, gemini). If None, uses preferred.
        model: Model name override. If None, uses the configured model or provider default.

    Returns:
        LLM client instance or None if no provider available.
    """
    if provider is None:
        provider = get_preferred_provider()

    if provider is None or provider not in PROVIDERS:
        return None

    api_key = get_api_key_for_provider(provider)
    if not api_key:
        return None

    info = PROVIDERS[provider]
    client_class = info["client_class"]
    model = model or load_config().get("model")

    try:
        client = client_class(api_key=api_key, model=model)
    except ImportError:
        logger.warning("%s SDK not installed. Run: pip install %s", provider, info["package"])
        return None
    except Exception as e:
        logger.warning("Failed to initialize %s client: %s", provider, e)
        return None

    logger.info("Using %s (%s)", info["display_name"], client.model_name)
    return client
