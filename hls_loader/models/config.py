"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

# Defaults match the historical command line: ROUTINES=1, ATTEMPTS=3.
DEFAULT_CONCURRENCY = 1
DEFAULT_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_JITTER_CEILING = 10.0


class LoaderConfig(BaseModel):
    """A validated configuration model for the application."""

    # Concurrency & Retry
    concurrency_limit: int = DEFAULT_CONCURRENCY
    max_attempts: int = DEFAULT_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    jitter_ceiling: float = DEFAULT_JITTER_CEILING
    max_delay: float | None = None

    # Network
    connect_timeout: float = 15.0
    read_timeout: float = 90.0

    # Display
    show_progress: bool = True

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("concurrency_limit")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable number of parallel fetches."""
        if v < 1 or v > 64:
            raise ValueError("Concurrency limit (ROUTINES) must be between 1 and 64.")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("Max attempts (ATTEMPTS) must be between 1 and 100.")
        return v

    @field_validator("base_delay", "jitter_ceiling", "connect_timeout", "read_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Value must be greater than 0.")
        return v

    @field_validator("max_delay")
    @classmethod
    def validate_max_delay(cls, v: float | None) -> float | None:
        """A cap of 0 or less disables capping."""
        if v is not None and v <= 0:
            return None
        return v

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "LoaderConfig":
        """Checks that the backoff cap is not below the base delay."""
        if self.max_delay is not None and self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}s) cannot be lower than "
                f"base_delay ({self.base_delay}s)."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
