"""
Configuration Management for Splitly Ledger Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The REST base URL, the channel endpoint and the reconnect policy are the only
knobs the engine has, and they are validated once at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from tenacity import wait_exponential, wait_fixed
from tenacity.wait import wait_base


class ApiSettings(BaseSettings):
    """Collaborator REST backend configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="SPLITLY_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    base_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the REST backend (including the /api prefix)"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Per-request timeout"
    )
    
    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ChannelSettings(BaseSettings):
    """Real-time channel configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="SPLITLY_CHANNEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    url: str = Field(
        default="http://localhost:3000",
        description="Socket.IO endpoint of the backend"
    )
    transports: str = Field(
        default="websocket",
        description="Comma-separated list of allowed Socket.IO transports"
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="How long to wait for the handshake to complete"
    )
    
    # Reconnect policy
    max_reconnect_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Consecutive failed attempts before giving up"
    )
    reconnect_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay between attempts (base delay for exponential backoff)"
    )
    reconnect_delay_max_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Upper bound for the exponential backoff delay"
    )
    backoff_strategy: str = Field(
        default="fixed",
        pattern="^(fixed|exponential)$",
        description="Delay growth between attempts"
    )
    
    @property
    def transports_list(self) -> list[str]:
        """Get allowed transports as a list."""
        return [t.strip().lower() for t in self.transports.split(",") if t.strip()]
    
    def reconnect_wait(self) -> wait_base:
        """
        Tenacity wait strategy between connect attempts.
        
        Fixed strategy always waits the base delay; exponential doubles it
        per attempt up to the configured cap.
        """
        if self.backoff_strategy == "exponential":
            return wait_exponential(
                multiplier=self.reconnect_delay_seconds,
                max=self.reconnect_delay_max_seconds,
            )
        return wait_fixed(self.reconnect_delay_seconds)


class AppSettings(BaseSettings):
    """
    Main application settings.
    
    Loads configuration from environment variables and .env file.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )
    
    @field_validator('log_level', mode='before')
    @classmethod
    def uppercase_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class Settings(BaseSettings):
    """
    Root settings container.
    
    Aggregates all sub-settings for easy access.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    @property
    def api(self) -> ApiSettings:
        return ApiSettings()
    
    @property
    def channel(self) -> ChannelSettings:
        return ChannelSettings()
    
    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.
    
    Returns a dict of {setting_name: is_valid}, plus a ``<name>_error``
    entry describing each failure. Useful for startup checks.
    """
    results = {}
    
    settings = get_settings()
    
    for name in ("api", "channel", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results
