"""Configuration management for DocChat application."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


class Config:
    """Application configuration loaded from environment variables."""

    # Provider Configuration
    @classmethod
    def get_groq_api_key(cls) -> str:
        """Get Groq API key from environment variables.

        Returns:
            Groq API key from environment or empty string if not set.
        """
        return os.getenv("GROQ_API_KEY", "")

    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get OpenAI API key from environment variables.

        Returns:
            OpenAI API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    ANSWER_PROVIDER: str = os.getenv("ANSWER_PROVIDER", "").strip().lower()

    GROQ_BASE_URL: str = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Chat Model Configuration
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-3.5-turbo")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "1000"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
    SUMMARY_MAX_TOKENS: int = int(os.getenv("SUMMARY_MAX_TOKENS", "500"))
    SUMMARY_TEMPERATURE: float = float(os.getenv("SUMMARY_TEMPERATURE", "0.5"))
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

    # Retrieval Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "2000"))
    TOP_K: int = int(os.getenv("TOP_K", "5"))
    MULTI_DOCUMENT_TOP_K: int = int(os.getenv("MULTI_DOCUMENT_TOP_K", "20"))
    CONTEXT_FALLBACK_MAX_CHARS: int = int(
        os.getenv("CONTEXT_FALLBACK_MAX_CHARS", "15000")
    )
    CITATION_PREVIEW_CHARS: int = int(os.getenv("CITATION_PREVIEW_CHARS", "100"))
    CHUNK_PREVIEW_CHARS: int = int(os.getenv("CHUNK_PREVIEW_CHARS", "200"))
    HISTORY_MESSAGES: int = int(os.getenv("HISTORY_MESSAGES", "4"))

    # Session Configuration
    SESSION_IDLE_SECONDS: int = int(os.getenv("SESSION_IDLE_SECONDS", "3600"))
    SESSION_CLEANUP_INTERVAL_SECONDS: int = int(
        os.getenv("SESSION_CLEANUP_INTERVAL_SECONDS", "3600")
    )

    # Streaming Configuration
    STREAM_TOKEN_DELAY_SECONDS: float = float(
        os.getenv("STREAM_TOKEN_DELAY_SECONDS", "0.02")
    )
    STREAM_WORDS_PER_EVENT: int = int(os.getenv("STREAM_WORDS_PER_EVENT", "3"))

    # Persistence Configuration
    PERSISTENCE_DB_PATH: Path | None = (
        Path(os.environ["PERSISTENCE_DB_PATH"])
        if os.getenv("PERSISTENCE_DB_PATH")
        else None
    )

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "DocChat/1.0")

    @classmethod
    def validate(cls) -> None:
        """Validate numeric configuration values.

        Raises:
            ValueError: If a size or limit is not positive or a delay is negative.
        """
        positive_settings = {
            "CHUNK_SIZE": cls.CHUNK_SIZE,
            "TOP_K": cls.TOP_K,
            "MULTI_DOCUMENT_TOP_K": cls.MULTI_DOCUMENT_TOP_K,
            "CONTEXT_FALLBACK_MAX_CHARS": cls.CONTEXT_FALLBACK_MAX_CHARS,
            "CITATION_PREVIEW_CHARS": cls.CITATION_PREVIEW_CHARS,
            "CHUNK_PREVIEW_CHARS": cls.CHUNK_PREVIEW_CHARS,
            "SESSION_IDLE_SECONDS": cls.SESSION_IDLE_SECONDS,
            "SESSION_CLEANUP_INTERVAL_SECONDS": cls.SESSION_CLEANUP_INTERVAL_SECONDS,
            "STREAM_WORDS_PER_EVENT": cls.STREAM_WORDS_PER_EVENT,
            "LLM_TIMEOUT_SECONDS": cls.LLM_TIMEOUT_SECONDS,
        }
        for name, value in positive_settings.items():
            if value <= 0:
                msg = f"{name} must be positive, got {value}"
                raise ValueError(msg)

        if cls.HISTORY_MESSAGES < 0:
            msg = f"HISTORY_MESSAGES must not be negative, got {cls.HISTORY_MESSAGES}"
            raise ValueError(msg)

        if cls.STREAM_TOKEN_DELAY_SECONDS < 0:
            msg = (
                "STREAM_TOKEN_DELAY_SECONDS must not be negative, "
                f"got {cls.STREAM_TOKEN_DELAY_SECONDS}"
            )
            raise ValueError(msg)

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment.

        Returns:
            True if environment is development.
        """
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment.

        Returns:
            True if environment is production.
        """
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at application startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        # The OpenAI SDK logs every request through httpx
        client_level = getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        for name in ("openai", "httpx"):
            logging.getLogger(name).setLevel(client_level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
