"""
Percento Providers - LLM backends for word-problem extraction.

Every backend answers one prompt with one ProviderResponse. Extraction
always asks for JSON, so each backend maps json_mode onto its own
structured-output switch. SDK backends import their package lazily;
Ollama and the OpenAI-compatible hosts talk plain HTTP through httpx.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from percento.validation.config import Config

logger = logging.getLogger(__name__)

JSON_ONLY_INSTRUCTION = "Respond with a single JSON object and nothing else."


@dataclass
class ProviderResponse:
    """One completion returned by a provider."""

    content: str
    model: str
    provider: str
    token_usage: int = 0
    finish_reason: str = "stop"


def _missing_sdk(package: str, extra: str) -> ImportError:
    return ImportError(f"{package} package required. Install with: pip install percento[{extra}]")


class Provider(ABC):
    """
    Base class for LLM providers.

    Subclasses name themselves and implement complete(). A provider is
    considered usable when it can find an API key, unless it overrides
    validate_connection().

    Example:
        >>> class EchoProvider(Provider):
        ...     provider_name = "echo"
        ...     def complete(self, prompt, system=None, json_mode=False, **kwargs):
        ...         return ProviderResponse(content=prompt, model=self.model, provider="echo")
    """

    def __init__(self, model: str, config: Config):
        self.model = model
        self.config = config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short name used in "provider/model" identifiers and config."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = False,
        **kwargs,
    ) -> ProviderResponse:
        """
        Send one prompt and return the reply.

        Args:
            prompt: User message.
            system: Optional system instruction.
            json_mode: Ask the backend for a JSON object reply.
            **kwargs: max_tokens / temperature overrides.

        Raises:
            ValueError: If the provider has no API key.
            ImportError: If the provider's SDK is not installed.
        """

    def validate_connection(self) -> bool:
        return self.get_api_key() is not None

    def get_api_key(self) -> Optional[str]:
        return self.config.get_api_key(self.provider_name)

    def _require_key(self) -> str:
        api_key = self.get_api_key()
        if not api_key:
            env_vars = " or ".join(Config.ENV_API_KEYS.get(self.provider_name, ()))
            hint = f"Set {env_vars} or add" if env_vars else "Add"
            raise ValueError(
                f"{self.provider_name} API key not configured. "
                f"{hint} providers.{self.provider_name}.api_key to the config."
            )
        return api_key

    @property
    def _timeout(self) -> float:
        return self.config.merged.ai.timeout

    def _max_tokens(self, kwargs: Dict[str, Any]) -> int:
        return kwargs.get("max_tokens", self.config.merged.ai.max_tokens)

    def _temperature(self, kwargs: Dict[str, Any]) -> float:
        return kwargs.get("temperature", self.config.merged.ai.temperature)

    @staticmethod
    def _messages(prompt: str, system: Optional[str]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        return messages


class OpenAIProvider(Provider):
    """OpenAI chat completions through the official SDK."""

    provider_name = "openai"

    def complete(self, prompt, system=None, json_mode=False, **kwargs) -> ProviderResponse:
        try:
            import openai
        except ImportError:
            raise _missing_sdk("openai", "openai")

        client = openai.OpenAI(api_key=self._require_key(), timeout=self._timeout)
        extra = {"response_format": {"type": "json_object"}} if json_mode else {}
        response = client.chat.completions.create(
            model=self.model,
            messages=self._messages(prompt, system),
            max_tokens=self._max_tokens(kwargs),
            temperature=self._temperature(kwargs),
            **extra,
        )

        choice = response.choices[0]
        return ProviderResponse(
            content=choice.message.content or "",
            model=response.model,
            provider=self.provider_name,
            token_usage=response.usage.total_tokens if response.usage else 0,
            finish_reason=choice.finish_reason,
        )


class AnthropicProvider(Provider):
    """
    Anthropic Messages API through the official SDK.

    The Messages API has no JSON response switch, so json_mode appends
    a JSON-only instruction to the system prompt.
    """

    provider_name = "anthropic"

    def complete(self, prompt, system=None, json_mode=False, **kwargs) -> ProviderResponse:
        try:
            import anthropic
        except ImportError:
            raise _missing_sdk("anthropic", "anthropic")

        client = anthropic.Anthropic(api_key=self._require_key(), timeout=self._timeout)
        system_text = "\n\n".join(
            part for part in (system, JSON_ONLY_INSTRUCTION if json_mode else None) if part
        )
        extra = {"system": system_text} if system_text else {}
        response = client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self._max_tokens(kwargs),
            temperature=self._temperature(kwargs),
            **extra,
        )

        return ProviderResponse(
            content=response.content[0].text,
            model=response.model,
            provider=self.provider_name,
            token_usage=response.usage.input_tokens + response.usage.output_tokens,
            finish_reason=response.stop_reason,
        )


class GoogleProvider(Provider):
    """Gemini through google-generativeai; json_mode sets the response MIME type."""

    provider_name = "google"

    def complete(self, prompt, system=None, json_mode=False, **kwargs) -> ProviderResponse:
        try:
            import google.generativeai as genai
        except ImportError:
            raise _missing_sdk("google-generativeai", "google")

        genai.configure(api_key=self._require_key())
        generation_config: Dict[str, Any] = {
            "max_output_tokens": self._max_tokens(kwargs),
            "temperature": self._temperature(kwargs),
        }
        if json_mode:
            generation_config["response_mime_type"] = "application/json"

        response = genai.GenerativeModel(self.model, system_instruction=system).generate_content(
            prompt,
            generation_config=generation_config,
            request_options={"timeout": self._timeout},
        )

        usage = getattr(response, "usage_metadata", None)
        return ProviderResponse(
            content=response.text,
            model=self.model,
            provider=self.provider_name,
            token_usage=getattr(usage, "total_token_count", 0) if usage else 0,
        )


class OllamaProvider(Provider):
    """A local Ollama server; needs no key, so validation pings the server."""

    provider_name = "ollama"
    DEFAULT_BASE_URL = "http://localhost:11434"

    @property
    def base_url(self) -> str:
        provider_config = self.config.get_provider_config("ollama")
        if provider_config and provider_config.api_base:
            return provider_config.api_base.rstrip("/")
        return self.DEFAULT_BASE_URL

    def complete(self, prompt, system=None, json_mode=False, **kwargs) -> ProviderResponse:
        import httpx

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._messages(prompt, system),
            "stream": False,
            "options": {"temperature": self._temperature(kwargs)},
        }
        if json_mode:
            payload["format"] = "json"

        response = httpx.post(f"{self.base_url}/api/chat", json=payload, timeout=self._timeout)
        response.raise_for_status()
        data = response.json()

        return ProviderResponse(
            content=data["message"]["content"],
            model=data.get("model", self.model),
            provider=self.provider_name,
            token_usage=data.get("eval_count", 0),
        )

    def validate_connection(self) -> bool:
        import httpx

        try:
            return httpx.get(f"{self.base_url}/api/tags", timeout=5).status_code == 200
        except httpx.HTTPError:
            return False


class OpenAICompatibleProvider(Provider):
    """
    A hosted endpoint speaking the OpenAI chat completions protocol.

    Subclasses set provider_name and base_url; keys resolve through
    Config.get_api_key like every other provider.
    """

    base_url: str = ""

    def complete(self, prompt, system=None, json_mode=False, **kwargs) -> ProviderResponse:
        import httpx

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._messages(prompt, system),
            "max_tokens": self._max_tokens(kwargs),
            "temperature": self._temperature(kwargs),
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        response = httpx.post(
            f"{self.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self._require_key()}"},
            json=payload,
            timeout=self._timeout,
        )
        response.raise_for_status()
        data = response.json()

        choice = data["choices"][0]
        return ProviderResponse(
            content=choice["message"]["content"],
            model=data.get("model", self.model),
            provider=self.provider_name,
            token_usage=data.get("usage", {}).get("total_tokens", 0),
            finish_reason=choice.get("finish_reason") or "stop",
        )


class OpenRouterProvider(OpenAICompatibleProvider):
    provider_name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"


class GroqProvider(OpenAICompatibleProvider):
    provider_name = "groq"
    base_url = "https://api.groq.com/openai/v1"


class ProviderFactory:
    """Resolves "provider/model" identifiers to provider instances."""

    _providers: Dict[str, Type[Provider]] = {
        cls.provider_name: cls
        for cls in (
            OpenAIProvider,
            AnthropicProvider,
            GoogleProvider,
            OllamaProvider,
            OpenRouterProvider,
            GroqProvider,
        )
    }

    # Bare model names, matched by prefix. Anything else goes to OpenRouter.
    _PREFIXES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
        (("gpt", "o1", "o3", "o4"), "openai"),
        (("claude",), "anthropic"),
        (("gemini",), "google"),
        (("llama", "deepseek"), "groq"),
    )

    @classmethod
    def register(cls, name: str, provider_class: Type[Provider]) -> None:
        cls._providers[name] = provider_class

    @classmethod
    def create(cls, model: str, config: Config) -> Provider:
        """
        Create the provider for a model identifier.

        Args:
            model: "google/gemini-2.0-flash", or a bare name like "gpt-4o".
            config: Percento configuration.

        Raises:
            ValueError: If the provider is unknown or disabled in config.
        """
        provider_name, model_name = cls.split_model(model)

        if provider_name not in cls._providers:
            raise ValueError(f"Unknown provider: {provider_name}")

        provider_config = config.get_provider_config(provider_name)
        if provider_config is not None and not provider_config.enabled:
            raise ValueError(f"Provider is disabled in config: {provider_name}")

        logger.debug("Using provider %s with model %s", provider_name, model_name)
        return cls._providers[provider_name](model=model_name, config=config)

    @classmethod
    def split_model(cls, model: str) -> Tuple[str, str]:
        """Split "provider/model", inferring the provider for bare names."""
        prefix, _, rest = model.partition("/")
        if rest and prefix in cls._providers:
            return prefix, rest
        return cls._infer_provider(model), model

    @classmethod
    def _infer_provider(cls, model: str) -> str:
        name = model.lower()
        for prefixes, provider_name in cls._PREFIXES:
            if name.startswith(prefixes):
                return provider_name
        return "openrouter"

    @classmethod
    def available_providers(cls) -> List[str]:
        return list(cls._providers)
