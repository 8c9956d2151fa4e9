"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_CHUNK_SIZE = 1024  # 1 KB
MAX_CHUNK_SIZE = 16 * 1024 * 1024  # 16 MB


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Retry Settings
    retry_delay: float = 5.0
    max_retries: int | None = None

    # Transfer Settings
    chunk_size: int = 131072  # 128 KB
    max_buffered_bytes: int = 4 * 1024 * 1024
    connect_timeout: float = 15.0
    read_timeout: float = 90.0
    max_connections_per_host: int = 8
    user_agent: str = ""

    # Output Settings
    output_dir: str = "."

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("retry_delay")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        """Ensures the delay between resume attempts is not negative."""
        if v < 0:
            raise ValueError("Retry delay cannot be negative.")
        return v

    @field_validator("max_retries", mode="before")
    @classmethod
    def validate_max_retries(cls, v):
        """Treats an empty value as 'no limit' and rejects negative limits."""
        if v in ("", None):
            return None
        if int(v) < 0:
            raise ValueError("Max retries cannot be negative.")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        """Ensures a reasonable read size."""
        if v < MIN_CHUNK_SIZE or v > MAX_CHUNK_SIZE:
            raise ValueError(
                f"Chunk size must be between {MIN_CHUNK_SIZE} and {MAX_CHUNK_SIZE} bytes."
            )
        return v

    @field_validator("connect_timeout", "read_timeout")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @field_validator("max_connections_per_host")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        """Ensures a reasonable number of connections."""
        if v < 1 or v > 32:
            raise ValueError("Max connections per host must be between 1 and 32.")
        return v

    @model_validator(mode="after")
    def validate_buffer_size(self) -> "DownloadConfig":
        """The channel must be able to hold at least one full chunk."""
        if self.max_buffered_bytes < self.chunk_size:
            raise ValueError(
                "max_buffered_bytes must be at least as large as chunk_size."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
