from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, SecretStr


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    DATA_DIR: Path = Field(Path("store"), description="Directory holding the SQLite database")
    DB_NAME: str = Field("aide.db", description="SQLite database filename")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    OPENAI_API_KEY: SecretStr | None = Field(None, description="OpenAI API Key")
    OPENAI_MODEL_AGENT: str = Field("gpt-5", description="Model answering relayed messages")

    ALLOWED_OWNERS: str = Field(
        "",
        description="Comma separated owner ids allowed to talk to the relay (empty allows all)"
    )
    COMMAND_PREFIX: str = Field("/", description="Messages starting with this are commands")

    # Memory heuristics
    MEMORY_MIN_MESSAGE_LENGTH: int = Field(
        20,
        description="User messages at or below this length are not remembered"
    )
    MEMORY_TRUNCATE_CHARS: int = Field(200, description="Per-role cut applied to stored turns")
    MEMORY_MAX_KEYWORDS: int = Field(5, description="Keywords taken from a message for search")
    MEMORY_MIN_KEYWORD_LENGTH: int = Field(3, description="Shorter tokens are ignored by search")
    MEMORY_SEARCH_LIMIT: int = Field(3, description="Keyword hits included in context")
    MEMORY_RECENT_LIMIT: int = Field(5, description="Recent memories included in context")
    MEMORY_SWEEP_INTERVAL_HOURS: float = Field(24.0, description="Hours between decay sweeps")

    @property
    def db_url(self) -> str:
        return f"sqlite:///{self.DATA_DIR / self.DB_NAME}"

    @property
    def allowed_owners(self) -> set[str]:
        return {o.strip() for o in self.ALLOWED_OWNERS.split(",") if o.strip()}

# Singleton instance
settings = Settings()
