"""flowbot configuration schema: YAML + Pydantic + env override."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ════════════════════════════════════════════════════════════
# SUB-CONFIGS (nested BaseModel)
# ════════════════════════════════════════════════════════════


class ServerConfig(BaseModel):
    """HTTP server (server.*)."""

    host: str = "0.0.0.0"
    port: int = 8000
    request_timeout_s: float = 120.0
    max_message_length: int = 10_000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("max_message_length")
    @classmethod
    def _positive_length(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("server.max_message_length must be positive")
        return v


class DatabaseConfig(BaseModel):
    path: str = "data/flowbot.db"


class ProviderConfig(BaseModel):
    """Single LLM provider."""

    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """LLM providers (LiteLLM multi-provider)."""

    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    deepseek: ProviderConfig = Field(default_factory=ProviderConfig)
    groq: ProviderConfig = Field(default_factory=ProviderConfig)
    gemini: ProviderConfig = Field(default_factory=ProviderConfig)
    ollama: ProviderConfig = Field(default_factory=ProviderConfig)


class LLMConfig(BaseModel):
    """Default completion parameters (llm.*). Requests may override model / max_tokens."""

    model: str = "openai/gpt-4o-mini"
    max_tokens: int = 1024
    temperature: float = 0.7
    cost_per_1k_tokens: float = 0.02
    system_prompt: str | None = None


class SkillsConfig(BaseModel):
    """Local skill runtime (skills.*)."""

    directory: str = "./skills"
    timeout_s: int = 30
    sandbox_enabled: bool = False

    @field_validator("timeout_s")
    @classmethod
    def _positive_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("skills.timeout_s must be positive")
        return v


# Channels
class TelegramChannelConfig(BaseModel):
    enabled: bool = False
    bot_token: str = ""
    allow_from: list[str] = Field(default_factory=list)


class WebChannelConfig(BaseModel):
    enabled: bool = True


class ChannelsConfig(BaseModel):
    telegram: TelegramChannelConfig = Field(default_factory=TelegramChannelConfig)
    web: WebChannelConfig = Field(default_factory=WebChannelConfig)


class LoggingConfig(BaseModel):
    """loguru sink settings (logging.*)."""

    level: str = "INFO"
    format: str = "text"  # 'text' | 'json'
    file: str | None = None
    rotation: str = "10 MB"

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level == "WARN":
            level = "WARNING"
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("format")
    @classmethod
    def _known_format(cls, v: str) -> str:
        if v not in {"text", "json"}:
            raise ValueError("logging.format must be 'text' or 'json'")
        return v


# ════════════════════════════════════════════════════════════
# ROOT CONFIG (BaseSettings: env + .env support)
# ════════════════════════════════════════════════════════════


class Config(BaseSettings):
    """
    Root configuration.

    Priority: env vars > .env > YAML (init kwargs) > defaults

    Env override examples:
        FLOWBOT_LLM__MODEL=anthropic/claude-sonnet-4-5-20250929
        FLOWBOT_DATABASE__PATH=data/prod.db
        FLOWBOT_PROVIDERS__OPENAI__API_KEY=sk-...
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWBOT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML arrives as init kwargs; env and .env must win over it.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # ── Computed properties ─────────────────────────────────

    @property
    def db_path(self) -> Path:
        return Path(self.database.path)

    @property
    def skills_path(self) -> Path:
        return Path(self.skills.directory).expanduser().resolve()

    # ── Provider helpers ────────────────────────────────────

    def get_api_key(self, model: str | None = None) -> str | None:
        """Get API key for model name. Falls back to first available."""
        model_name = (model or self.llm.model).lower()

        keyword_map: dict[str, ProviderConfig] = {
            "anthropic": self.providers.anthropic,
            "claude": self.providers.anthropic,
            "openai": self.providers.openai,
            "gpt": self.providers.openai,
            "openrouter": self.providers.openrouter,
            "deepseek": self.providers.deepseek,
            "groq": self.providers.groq,
            "gemini": self.providers.gemini,
        }
        for keyword, provider in keyword_map.items():
            if keyword in model_name and provider.api_key:
                return provider.api_key

        for name in ProvidersConfig.model_fields:
            p = getattr(self.providers, name)
            if isinstance(p, ProviderConfig) and p.api_key:
                return p.api_key
        return None

    def get_api_base(self, model: str | None = None) -> str | None:
        """Get API base URL for model name."""
        model_name = (model or self.llm.model).lower()
        if "openrouter" in model_name:
            return self.providers.openrouter.api_base or "https://openrouter.ai/api/v1"
        for name in ProvidersConfig.model_fields:
            p = getattr(self.providers, name)
            if isinstance(p, ProviderConfig) and name in model_name and p.api_base:
                return p.api_base
        return None
