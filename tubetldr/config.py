from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

DEFAULT_SYSTEM_PROMPT = (
    "You summarize YouTube videos from their captions. "
    "Write a concise Markdown summary with a one-sentence overview followed by the key points. "
    "Only use information present in the transcript."
)

class Settings(BaseSettings):
    # LLM Configuration
    LLM_API_KEY: Optional[str] = None
    LLM_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_TEMPERATURE: float = 1.0
    LLM_TIMEOUT: float = 120.0
    SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    CHUNK_MAX_TOKENS: int = 24000

    # Caption Pipeline
    TRANSCRIPT_LANG: str = "en"
    MAX_CONCURRENCY: int = 4
    REQUEST_TIMEOUT: float = 10.0
    BATCH_TIMEOUT: Optional[float] = None
    INNERTUBE_CLIENT_NAME: str = "ANDROID"
    INNERTUBE_CLIENT_VERSION: str = "20.10.38"
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/142.0.0.0 Safari/537.36"
    )

    # System Settings
    LOG_LEVEL: str = "INFO"
    MAX_RETRIES: int = 3

    # Paths
    OUTPUT_DIR: str = "outputs"
    CACHE_DIR: str = ".cache"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
