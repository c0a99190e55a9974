"""Continuation configuration.

ContinuationConfig is an immutable value attached to each job type when the
class is defined. Defaults come from ContinuationSettings, which reads
JOB_CONTINUATION_* environment variables (and a .env file if present).

Settings are read (and cached) when a job class is defined. Job types that
already exist keep their config; after ``clear_settings_cache()`` only job
classes defined afterwards see the new environment.

Example:
    ```bash
    export JOB_CONTINUATION_MAX_RESUMPTIONS=10
    export JOB_CONTINUATION_RESUME_WAIT_SECONDS=2.5
    ```

    ```python
    class ImportJob(ContinuableJob, max_resumptions=3):
        ...
    ```
"""

from datetime import timedelta
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResumeOptions(BaseModel):
    """Options passed to ``retry_job`` when a job is resumed."""

    model_config = ConfigDict(frozen=True)

    wait: timedelta | None = Field(
        default=timedelta(seconds=5),
        description="Delay before the resumed execution becomes due",
    )
    queue: str | None = Field(default=None, description="Queue override for the resumed job")
    priority: int | None = Field(default=None, description="Priority override for the resumed job")

    def as_retry_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``Job.retry_job``."""
        return {"wait": self.wait, "queue": self.queue, "priority": self.priority}


class ContinuationConfig(BaseModel):
    """Per job type continuation policy.

    Frozen: a job type's policy is fixed once the class is defined. Subclasses
    derive their own copy with ``with_overrides``.
    """

    model_config = ConfigDict(frozen=True)

    max_resumptions: int | None = Field(
        default=None, ge=0, description="Maximum resumptions, None for unbounded"
    )
    resume_options: ResumeOptions = Field(default_factory=ResumeOptions)
    resume_errors_after_advancing: bool = Field(
        default=True,
        description="Resume (instead of failing) on errors raised after progress was made",
    )

    def with_overrides(self, **overrides: Any) -> "ContinuationConfig":
        """Return a validated copy with the given fields replaced."""
        if not overrides:
            return self
        data = self.model_dump()
        data.update(overrides)
        return ContinuationConfig.model_validate(data)


class ContinuationSettings(BaseSettings):
    """Process-wide continuation defaults from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="JOB_CONTINUATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    max_resumptions: int | None = Field(default=None, ge=0)
    resume_wait_seconds: float = Field(default=5.0, ge=0.0)
    resume_errors_after_advancing: bool = True

    def to_config(self) -> ContinuationConfig:
        """Build the default ContinuationConfig from these settings."""
        return ContinuationConfig(
            max_resumptions=self.max_resumptions,
            resume_options=ResumeOptions(wait=timedelta(seconds=self.resume_wait_seconds)),
            resume_errors_after_advancing=self.resume_errors_after_advancing,
        )


@lru_cache(maxsize=1)
def get_settings() -> ContinuationSettings:
    """Get cached ContinuationSettings instance."""
    return ContinuationSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()


__all__ = [
    "ResumeOptions",
    "ContinuationConfig",
    "ContinuationSettings",
    "get_settings",
    "clear_settings_cache",
]
