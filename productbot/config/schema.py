"""Configuration schema using Pydantic."""

from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DiscordConfig(BaseModel):
    """Discord channel configuration."""
    token: str = ""  # Bot token from Discord Developer Portal
    allow_guilds: list[str] = Field(default_factory=list)  # Allowed guild IDs
    allow_channels: list[str] = Field(default_factory=list)  # Allowed channel IDs
    allow_users: list[str] = Field(default_factory=list)  # Allowed user IDs


class KnowledgeConfig(BaseModel):
    """Knowledge bundle configuration."""
    bundle_path: str = "bot-data/knowledge_bundle.json"
    refresh_interval_seconds: float = 15 * 60
    load_timeout_seconds: float = 30.0


class CommandsConfig(BaseModel):
    """Prefixed text command configuration."""
    prefix: str = "!"


class AIConfig(BaseModel):
    """AI reply configuration."""
    model: str = "gpt-4o-mini"
    fallback_models: list[str] = Field(default_factory=list)
    max_tokens: int = 500
    temperature: float = 0.7
    timeout_seconds: float = 30.0
    max_message_length: int = 2000  # Discord message limit
    trigger_keywords: list[str] = Field(default_factory=lambda: ["help", "ai"])
    personality: str = ""  # Used when the bundle has no system prompt


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None
    cooldown_seconds: int = 300  # Time before retrying a failed model


class RateLimitConfig(BaseModel):
    """Per-user AI rate limiting."""
    max_messages: int = 5  # Max AI requests per window
    window_seconds: float = 60.0
    cooldown_seconds: float = 10.0  # Minimum gap between two requests


class Config(BaseSettings):
    """Root configuration for productbot."""
    model_config = SettingsConfigDict(
        env_prefix="PRODUCTBOT_",
        env_nested_delimiter="__",
    )

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @property
    def bundle_path(self) -> Path:
        """Get expanded bundle path."""
        return Path(self.knowledge.bundle_path).expanduser()

    @property
    def has_api_key(self) -> bool:
        """Whether an AI provider key is configured."""
        return bool(self.providers.api_key)
