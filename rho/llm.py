"""LLM providers, their preset models and the runtime LLM configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

# (display name, model-string prefix, whitespace-separated preset models)
_BUILTIN_PROVIDERS: tuple[tuple[str, str, str], ...] = (
    (
        "OpenHands",
        "openhands",
        "claude-sonnet-4-5-20250929 claude-opus-4-6 gpt-5.2 gpt-5.1 deepseek-chat",
    ),
    (
        "Anthropic",
        "anthropic",
        "claude-sonnet-4-5-20250929 claude-opus-4-6 claude-sonnet-4-6 "
        "claude-3-5-sonnet-20241022 claude-3-opus-20240229 claude-3-haiku-20240307",
    ),
    ("OpenAI", "openai", "gpt-5.2 gpt-5.1 gpt-4o gpt-4o-mini o4-mini o3"),
    ("Mistral", "mistral", "devstral-medium-2512 devstral-2512 devstral-small-2507"),
    ("Google", "google", "gemini-2.5-pro gemini-2.5-flash gemini-2.0-flash"),
    ("DeepSeek", "deepseek", "deepseek-chat deepseek-reasoner"),
)

_PRESET_MODELS: dict[str, tuple[str, ...]] = {
    prefix: tuple(models.split()) for _, prefix, models in _BUILTIN_PROVIDERS
}


@dataclass(frozen=True)
class LlmProvider:
    """An LLM provider: one of the built-in ones, or a free-form other provider."""

    label: str
    prefix: str
    builtin: bool = True

    OPENHANDS: ClassVar[LlmProvider]
    ANTHROPIC: ClassVar[LlmProvider]
    OPENAI: ClassVar[LlmProvider]
    MISTRAL: ClassVar[LlmProvider]
    GOOGLE: ClassVar[LlmProvider]
    DEEPSEEK: ClassVar[LlmProvider]

    @classmethod
    def other(cls, name: str) -> LlmProvider:
        """A provider not in the built-in list, named by ``name``."""
        return cls(label=name, prefix=name, builtin=False)

    def display_name(self) -> str:
        return self.label

    def provider_prefix(self) -> str:
        """Prefix used in model strings, such as ``anthropic``."""
        return self.prefix

    def models(self) -> list[str]:
        """Preset models offered for this provider."""
        return list(_PRESET_MODELS.get(self.prefix, ())) if self.builtin else []

    @classmethod
    def all(cls) -> list[LlmProvider]:
        """The built-in providers, in display order."""
        return [cls(label, prefix) for label, prefix, _ in _BUILTIN_PROVIDERS]

    def __str__(self) -> str:
        return self.label


(
    LlmProvider.OPENHANDS,
    LlmProvider.ANTHROPIC,
    LlmProvider.OPENAI,
    LlmProvider.MISTRAL,
    LlmProvider.GOOGLE,
    LlmProvider.DEEPSEEK,
) = LlmProvider.all()


def _default_model() -> str:
    return next(iter(LlmProvider.ANTHROPIC.models()), "")


@dataclass
class LlmState:
    """Runtime LLM provider, model, key and tuning settings."""

    provider: LlmProvider = LlmProvider.ANTHROPIC
    model: str = field(default_factory=_default_model)
    api_key: str = ""
    base_url: str | None = None
    # When non-empty, sent to the server instead of the preset model.
    custom_model: str = ""
    llm_timeout_seconds: int = 600
    llm_max_input_tokens: int | None = None
    condenser_max_size: int | None = None
    memory_condensation: bool = True