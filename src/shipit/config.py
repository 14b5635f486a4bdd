"""Configuration management and AI provider selection for shipit."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError

from shipit.errors import ConfigError

logger = logging.getLogger(__name__)

THINKING_BUDGET = 2048


class Config(BaseModel):
    """Application configuration."""

    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    google_api_key: str | None = Field(default=None, description="Google Gemini API key")
    model: str | None = Field(default=None, description="Override the provider's default model")

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the config file."""
        if xdg_config := os.getenv("XDG_CONFIG_HOME"):
            return Path(xdg_config) / "shipit" / "config.toml"
        if os.name == "nt":
            base = Path(os.getenv("APPDATA", Path.home()))
        else:
            base = Path.home() / ".config"
        return base / "shipit" / "config.toml"


class AnthropicProvider(BaseModel):
    provider: Literal["anthropic"] = "anthropic"
    name: str
    model: str
    api_key: str
    temperature: float | None = None
    max_tokens: int = 8192


class OpenAIProvider(BaseModel):
    provider: Literal["openai"] = "openai"
    name: str
    model: str
    api_key: str
    # o1 style reasoning models take no system prompt
    system_in_prompt: bool = False


class GoogleProvider(BaseModel):
    provider: Literal["google"] = "google"
    name: str
    model: str
    api_key: str
    thinking_budget: int = 0
    include_thoughts: bool = False


AIProviderConfig = Annotated[
    Union[AnthropicProvider, OpenAIProvider, GoogleProvider],
    Field(discriminator="provider"),
]


def _load_env_local(path: Path) -> None:
    """Fill unset environment variables from a .env.local file."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.debug("Could not read %s: %s", path, e)
        return
    for line in lines:
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def load_config() -> Config:
    """Load configuration from environment variables and config file.

    Priority: Environment variables > .env.local > Config file > Defaults
    """
    env_local = Path.cwd() / ".env.local"
    if env_local.exists():
        _load_env_local(env_local)

    config_data: dict[str, Any] = {}

    config_path = Config.get_config_path()
    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                file_config = tomllib.load(f)
            section = file_config.get("default", {})
            if isinstance(section, dict):
                Config.model_validate(section)
                config_data.update(section)
            else:
                logger.debug("Ignoring config file %s: [default] is not a table", config_path)
        except (OSError, tomllib.TOMLDecodeError, ValidationError) as e:
            logger.debug("Ignoring unreadable config file %s: %s", config_path, e)

    env_keys = {
        "anthropic_api_key": ("ANTHROPIC_API_KEY",),
        "openai_api_key": ("OPENAI_API_KEY",),
        "google_api_key": ("GOOGLE_GENERATIVE_AI_API_KEY", "GOOGLE_API_KEY"),
        "model": ("SHIPIT_MODEL",),
    }
    for field, names in env_keys.items():
        for name in names:
            if value := os.getenv(name):
                config_data[field] = value
                break

    try:
        return Config(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}")


def detect_ai_provider(config: Config, thinking: bool = False) -> AIProviderConfig:
    """Pick the AI provider from the available credentials.

    Prioritizes Anthropic, then OpenAI, then Google Gemini.

    Args:
        config: Loaded configuration.
        thinking: Whether to use the provider's deeper reasoning setup.

    Returns:
        The provider configuration with its provider specific options.

    Raises:
        ConfigError: If no API key is configured.
    """
    if config.anthropic_api_key:
        return AnthropicProvider(
            name="Claude 3.5 Sonnet",
            model=config.model or "claude-3-5-sonnet-20241022",
            api_key=config.anthropic_api_key,
            # Lower temperature for more deliberate reasoning in thinking mode
            temperature=0.3 if thinking else None,
        )

    if config.openai_api_key:
        return OpenAIProvider(
            name="o1" if thinking else "GPT-4o",
            model=config.model or ("o1" if thinking else "gpt-4o"),
            api_key=config.openai_api_key,
            system_in_prompt=thinking,
        )

    if config.google_api_key:
        return GoogleProvider(
            name="Gemini 2.0 Flash (thinking)" if thinking else "Gemini 2.5 Flash",
            model=config.model or ("gemini-2.0-flash-001" if thinking else "gemini-2.5-flash"),
            api_key=config.google_api_key,
            thinking_budget=THINKING_BUDGET if thinking else 0,
            include_thoughts=thinking,
        )

    raise ConfigError(
        "No AI provider API key found. Please set one of:\n"
        "  - ANTHROPIC_API_KEY for Claude\n"
        "  - OPENAI_API_KEY for GPT\n"
        "  - GOOGLE_GENERATIVE_AI_API_KEY for Gemini"
    )
