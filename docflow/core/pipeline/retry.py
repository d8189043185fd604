"""
Retry policy for collaborator calls.

Bounded exponential backoff with jitter via tenacity. Only transient
infrastructure errors are retried; everything else propagates on the
first failure.

Dependencies: tenacity
System role: Shared retry handling for stage workers
"""

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from docflow.configs.pipeline import PipelineSettings
from docflow.core.exceptions import TransientInfraError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff settings."""

    max_attempts: int = 5
    initial_backoff: float = 1.0
    max_backoff: float = 30.0
    jitter: float = 5.0

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_backoff=settings.retry_initial_backoff,
            max_backoff=settings.retry_max_backoff,
            jitter=settings.retry_jitter,
        )

    def call(
        self,
        fn: Callable[..., T],
        *args,
        operation: str = "call",
        retry_on: tuple[type[BaseException], ...] = (TransientInfraError,),
        **kwargs,
    ) -> T:
        """
        Invoke fn, retrying on the given exception types.

        Args:
            fn: Callable to invoke
            *args: Positional arguments for fn
            operation: Name used in retry log lines
            retry_on: Exception types worth retrying
            **kwargs: Keyword arguments for fn

        Returns:
            Result of fn

        Raises:
            The last exception once attempts are exhausted, or any
            non-retryable exception immediately
        """
        retrying = Retrying(
            retry=retry_if_exception_type(retry_on),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.initial_backoff,
                max=self.max_backoff,
                jitter=self.jitter,
            ),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:{operation} - Retry {retry_state.attempt_number}/{self.max_attempts} "
                f"after {type(retry_state.outcome.exception()).__name__}"
            ),
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)


NO_RETRY = RetryPolicy(max_attempts=1, initial_backoff=0, max_backoff=0, jitter=0)
