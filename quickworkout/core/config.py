"""
Configuration and constants for the Quick Workout service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # OpenAI Configuration
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")

    # Server Configuration
    PORT: int = int(os.getenv("PORT", 10000))
    HOST: str = "0.0.0.0"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() != "false"

    # AI Temperature Settings
    TEMPERATURE_CREATIVE: float = 0.7    # Workout generation

    # Response Parsing
    PARSE_MIN_CANDIDATE_SCORE: int = int(os.getenv("PARSE_MIN_CANDIDATE_SCORE", 30))
    PARSE_MAX_BRACE_CANDIDATES: int = int(os.getenv("PARSE_MAX_BRACE_CANDIDATES", 200))

    # Normalization defaults
    DEFAULT_CONFIDENCE: float = 0.8
    CALORIES_PER_MINUTE: int = 7

    # Validation
    DURATION_TOLERANCE_SECONDS: int = 5 * 60
    PHASE_TIMING_TOLERANCE_SECONDS: int = 60

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration on startup."""
        missing = []

        if not cls.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )


settings = Settings()
