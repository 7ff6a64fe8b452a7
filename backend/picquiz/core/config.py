"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Picture Quiz API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    # Security
    # IMPORTANT: These MUST be set in .env file - no defaults for security
    SECRET_KEY: str = Field(
        ..., description="Key for the answer option ids sent to clients (required)"
    )
    JWT_SECRET_KEY: str = Field(..., description="JWT signing secret key (required)")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Database (exam sessions, question statistics, explanations)
    DATABASE_URL: str = "sqlite:///./picquiz.db"

    # Exam
    EXAM_QUESTION_COUNT: int = Field(default=17, ge=1)
    EXAM_DURATION_SECONDS: int = Field(default=2 * 60 * 60, gt=0)
    EXAM_HISTORY_LIMIT: int = 50

    # Practice loop anti-cheat
    # Heuristic tuning point: approximates the minimum plausible human
    # reaction and decision time for this quiz's difficulty.
    PRACTICE_WINDOW_SECONDS: int = 200
    PRACTICE_MAX_ANSWERS_PER_WINDOW: int = 10
    PRACTICE_MAX_CORRECT_PER_WINDOW: int = 8
    CHEAT_FLAGS_BEFORE_BAN: int = 3

    # Presence
    ONLINE_WINDOW_MINUTES: int = 5
    LAST_SEEN_THROTTLE_SECONDS: int = 30
    ONLINE_COUNT_CACHE_SECONDS: int = 30
    LEADERBOARD_SIZE: int = 50

    # External collaborators
    STORE_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for every account/image/session store call",
    )
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = Field(default="", repr=False)
    SUPABASE_BUCKET: str = "quiz-images"
    SUPABASE_USERS_TABLE: str = "WinterUsers"
    SIGNED_URL_TTL_SECONDS: int = 3600
    IMAGE_LIST_CACHE_SECONDS: int = 300
    EXPLANATION_CACHE_SECONDS: int = 1800
    LOCAL_IMAGES_DIR: str = "quiz_images"
    LOCAL_USERS_FILE: str = "data/users.json"

    # Difficulty classification
    DIFFICULTY_MIN_ATTEMPTS: int = 5
    DIFFICULTY_EASY_RATE: float = Field(default=0.7, ge=0.0, le=1.0)
    DIFFICULTY_HARD_RATE: float = Field(default=0.4, ge=0.0, le=1.0)

    # Admin
    ADMIN_TOKEN: str = Field(
        default="",
        description="Admin API token (required for admin endpoints)",
    )

    # Email/SMTP Settings (for error reports)
    SMTP_HOST: str = Field(default="", description="SMTP server hostname")
    SMTP_PORT: int = Field(default=587, description="SMTP server port")
    SMTP_USERNAME: str = Field(default="", description="SMTP username")
    SMTP_PASSWORD: str = Field(default="", repr=False)
    SMTP_FROM_EMAIL: str = Field(default="noreply@picquiz.app")
    SMTP_FROM_NAME: str = Field(default="Picture Quiz")
    REPORT_EMAIL_TO: str = Field(
        default="",
        description="Maintainer address receiving question error reports",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @property
    def use_remote_backends(self) -> bool:
        """True when Supabase credentials are configured."""
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)

    @model_validator(mode="after")
    def validate_anti_cheat_thresholds(self) -> Self:
        """Reject anti-cheat thresholds that would disable or invert detection."""
        thresholds = {
            "PRACTICE_WINDOW_SECONDS": self.PRACTICE_WINDOW_SECONDS,
            "PRACTICE_MAX_ANSWERS_PER_WINDOW": self.PRACTICE_MAX_ANSWERS_PER_WINDOW,
            "PRACTICE_MAX_CORRECT_PER_WINDOW": self.PRACTICE_MAX_CORRECT_PER_WINDOW,
            "CHEAT_FLAGS_BEFORE_BAN": self.CHEAT_FLAGS_BEFORE_BAN,
        }
        non_positive = [name for name, value in thresholds.items() if value <= 0]
        if non_positive:
            raise ValueError(
                f"Anti-cheat thresholds must be positive, got non-positive: {non_positive}"
            )
        return self

    @model_validator(mode="after")
    def validate_difficulty_rates(self) -> Self:
        """The hard cut-off must sit below the easy cut-off."""
        if self.DIFFICULTY_HARD_RATE >= self.DIFFICULTY_EASY_RATE:
            raise ValueError(
                "DIFFICULTY_HARD_RATE must be lower than DIFFICULTY_EASY_RATE, "
                f"got {self.DIFFICULTY_HARD_RATE} >= {self.DIFFICULTY_EASY_RATE}"
            )
        return self


# mypy doesn't understand that pydantic_settings loads required fields from env vars
settings = Settings()  # type: ignore[call-arg]
