"""Application configuration with validation."""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


CATALOGUE_FORMATS = ("compact", "json", "pathlist", "unix")


class Settings(BaseSettings):
    """
    Worker settings with validation.

    Every field can be overridden by the upper-cased environment variable
    of the same name (e.g. ``TASK_MAX_SIZE_PER_USER=3``) or from ``.env``.
    """

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./docwarehouse.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled (prevents stale connections)"
    )

    # Generation service (LiteLLM model strings, e.g. "openai/gpt-4.1")
    chat_model: str = Field(
        default="openai/gpt-4.1-mini",
        description="LiteLLM model used for document content, readme, overview and changelog"
    )
    analysis_model: str = Field(
        default="",
        description="LiteLLM model used for catalogue planning (empty = chat_model)"
    )
    llm_api_key: str = Field(
        default="",
        description="API key for the generation provider"
    )
    llm_api_base: str = Field(
        default="",
        description="Base URL for the generation provider (optional, for custom endpoints)"
    )
    llm_timeout_seconds: int = Field(
        default=600,
        description="Upper bound on a single generation call, streaming included"
    )
    llm_max_tokens: int = Field(
        default=0,
        description="max_tokens sent with each completion (0 = provider default)"
    )

    # Scheduler
    poll_interval_seconds: float = Field(
        default=5.0,
        description="Seconds between polls when no job is pending"
    )
    failure_backoff_seconds: float = Field(
        default=5.0,
        description="Seconds to pause after a job fails"
    )

    # Catalogue planning
    plan_max_attempts: int = Field(
        default=5,
        description="Think+plan rounds before catalogue planning gives up"
    )
    plan_retry_delay_seconds: float = Field(
        default=5.0,
        description="Linear backoff unit: attempt k waits (k - 1) * this value"
    )

    # Document generation
    # TASK_MAX_SIZE_PER_USER: unbounded fan-out gets rate limited (HTTP 429) upstream.
    task_max_size_per_user: int = Field(
        default=5,
        description="Maximum concurrent document generation tasks per job"
    )
    max_dependent_file_chars: int = Field(
        default=20_000,
        description="Characters of each dependent file included in a document prompt"
    )

    breaker_failure_threshold: int = Field(
        default=3,
        description="Consecutive failures of one model before its calls are refused"
    )
    breaker_cooldown_seconds: float = Field(
        default=60.0,
        description="Seconds a tripped model is refused before a probe call"
    )

    # Repository scanning and catalogue rendering
    catalogue_format: str = Field(
        default="compact",
        description="Directory structure format: compact, json, pathlist or unix"
    )
    enable_smart_filter: bool = Field(
        default=True,
        description="Ask the model to simplify very large file listings"
    )
    smart_filter_threshold: int = Field(
        default=800,
        description="File count above which the smart filter kicks in"
    )
    excluded_files: str = Field(
        default="node_modules,bin,obj,dist,build,*.min.js,*.lock,package-lock.json",
        description="Extra ignore patterns appended to .gitignore (comma-separated)"
    )
    max_file_size_bytes: int = Field(
        default=1024 * 1024,
        description="Files at or above this size are left out of the catalogue"
    )

    # Source acquisition
    git_path: str = Field(
        default="./repositories",
        description="Directory where git repositories are cloned"
    )
    git_timeout_seconds: int = Field(
        default=600,
        description="Timeout for git clone / pull / log subprocesses"
    )
    commit_log_count: int = Field(
        default=20,
        description="Recent commits summarized into the changelog"
    )

    # Optional stages
    enable_mini_map: bool = Field(
        default=True,
        description="Generate the knowledge mini map after documents are written"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    @property
    def planning_model(self) -> str:
        """Model used for think/plan passes."""
        return self.analysis_model or self.chat_model

    def get_excluded_files(self) -> List[str]:
        """Parse the comma-separated ignore patterns."""
        return [p.strip() for p in self.excluded_files.split(',') if p.strip()]

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('catalogue_format')
    @classmethod
    def validate_catalogue_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in CATALOGUE_FORMATS:
            raise ValueError(f"Invalid catalogue format. Must be one of: {list(CATALOGUE_FORMATS)}")
        return v_lower

    @field_validator('task_max_size_per_user', 'plan_max_attempts')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be at least 1")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
