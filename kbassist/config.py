"""Configuration management for the KB Assist application."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    # OpenAI Configuration
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get OpenAI API key from environment variables.

        Returns:
            OpenAI API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    ASSISTANT_NAME: str = os.getenv("ASSISTANT_NAME", "Nick")

    # Embedding Configuration
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-large")
    EMBEDDING_DIMENSIONS: int = int(os.getenv("EMBEDDING_DIMENSIONS", "1024"))

    # Chat Model Configuration
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4o")
    ANSWER_MAX_TOKENS: int = int(os.getenv("ANSWER_MAX_TOKENS", "500"))
    ANSWER_TEMPERATURE: float = float(os.getenv("ANSWER_TEMPERATURE", "0.3"))

    # Query Expansion Configuration
    EXPANSION_MAX_TOKENS: int = int(os.getenv("EXPANSION_MAX_TOKENS", "200"))
    EXPANSION_TEMPERATURE: float = float(os.getenv("EXPANSION_TEMPERATURE", "0.7"))

    # Re-ranking Configuration
    RERANK_MAX_TOKENS: int = int(os.getenv("RERANK_MAX_TOKENS", "100"))
    RERANK_TEMPERATURE: float = float(os.getenv("RERANK_TEMPERATURE", "0.3"))

    # Retrieval Configuration
    RETRIEVAL_MAX_WORKERS: int = int(os.getenv("RETRIEVAL_MAX_WORKERS", "3"))

    # Vector Store Configuration
    VECTOR_BACKEND: str = os.getenv("VECTOR_BACKEND", "faiss").lower()
    VECTOR_STORE_DB_PATH: Path = Path(
        os.getenv("VECTOR_STORE_DB_PATH", "data/vector_store.db")
    )
    FAISS_INDEX_PATH: Path = Path(
        os.getenv("FAISS_INDEX_PATH", "data/faiss/index.faiss")
    )

    # Ingestion Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "3200"))
    CHUNK_OVERLAP: int = int(os.getenv("CHUNK_OVERLAP", "200"))

    # HTTP API Configuration
    API_INCLUDE_SOURCES: bool = _env_flag("API_INCLUDE_SOURCES")
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "KBAssist/1.0")

    @classmethod
    def missing_settings(cls) -> list[str]:
        """List required settings that are absent.

        Returns:
            Environment variable names that must be set before answering.
        """
        missing = []
        if not cls.get_openai_api_key():
            missing.append("OPENAI_API_KEY")
        if not cls.EMBEDDING_MODEL:
            missing.append("EMBEDDING_MODEL")
        if not cls.CHAT_MODEL:
            missing.append("CHAT_MODEL")
        return missing

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Raises:
            ConfigurationError: If a required setting is not set.
        """
        missing = cls.missing_settings()
        if missing:
            msg = (
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file or environment configuration."
            )
            raise ConfigurationError(msg)

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

        logging.getLogger("openai").setLevel(
            getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        )

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
