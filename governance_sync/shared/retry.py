"""
Retry utilities for handling transient failures.

This module provides helpers for retrying ledger reads and for spacing out
resubscription attempts with configurable backoff strategies.

Exception Handling:
- By default, retries on RetryableException and its subclasses
- NonRetryableException is never retried (propagates immediately)
- Contract reverts (ContractLogicError) propagate immediately even though
  they are Web3Exceptions: the same call reverts again
- Can customize retryable_exceptions per operation
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from web3.exceptions import (
    BadFunctionCallOutput,
    BlockNotFound,
    ContractLogicError,
    TransactionNotFound,
    Web3Exception,
)

from governance_sync.shared.exceptions import RetryableException

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Network/RPC related errors plus the RetryableException hierarchy.
# Decode failures are permanent and not listed.
DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    RetryableException,
    ConnectionError,
    TimeoutError,
    OSError,
    Web3Exception,
    BadFunctionCallOutput,
    TransactionNotFound,
    BlockNotFound,
)

# Raised on the first failure even though they are Web3Exceptions.
NON_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (ContractLogicError,)


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential: bool = True,
) -> float:
    """Delay before retry number ``attempt + 1`` (attempt is zero-based)."""
    if exponential:
        return min(base_delay * (2**attempt), max_delay)
    return min(base_delay, max_delay)


async def retry_async_operation(
    operation: Callable[..., T],
    *args: Any,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    operation_name: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """
    Retry an async operation with configurable backoff.

    Args:
        operation: Async function to call
        *args: Positional arguments for the operation
        max_attempts: Maximum retry attempts
        base_delay: Initial delay between retries
        max_delay: Maximum delay between retries
        exponential: Use exponential backoff
        retryable_exceptions: Exception types to retry on
        operation_name: Optional name for logging
        **kwargs: Keyword arguments for the operation

    Returns:
        Result of the operation

    Example:
        count = await retry_async_operation(
            read_count,
            max_attempts=5,
            operation_name="getProposalCount"
        )
    """
    if retryable_exceptions is None:
        retryable_exceptions = DEFAULT_RETRYABLE_EXCEPTIONS

    name = operation_name or getattr(operation, "__name__", "operation")
    last_exception: Optional[Exception] = None

    for attempt in range(max_attempts):
        try:
            return await operation(*args, **kwargs)
        except retryable_exceptions as e:
            if isinstance(e, NON_RETRYABLE_EXCEPTIONS):
                raise
            last_exception = e

            if attempt < max_attempts - 1:
                delay = compute_delay(
                    attempt, base_delay, max_delay, exponential
                )

                logger.warning(
                    f"Attempt {attempt + 1}/{max_attempts} failed for "
                    f"{name}: {e}. Retrying in {delay:.1f}s..."
                )

                await asyncio.sleep(delay)

    if last_exception:
        raise last_exception
    raise RuntimeError(
        "Unexpected state: no exception but all attempts exhausted"
    )


class RetryConfig:
    """
    Configuration class for retry behavior.

    Can be used to share retry settings across multiple operations.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential: bool = True,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential = exponential
        self.retryable_exceptions = (
            retryable_exceptions or DEFAULT_RETRYABLE_EXCEPTIONS
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay for a zero-based attempt number."""
        return compute_delay(
            attempt, self.base_delay, self.max_delay, self.exponential
        )

    async def run(
        self,
        operation: Callable[..., T],
        *args: Any,
        operation_name: Optional[str] = None,
        **kwargs: Any,
    ) -> T:
        """Run ``operation`` through retry_async_operation with this config."""
        return await retry_async_operation(
            operation,
            *args,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential=self.exponential,
            retryable_exceptions=self.retryable_exceptions,
            operation_name=operation_name,
            **kwargs,
        )


# Pre-configured retry configs for common use cases
RPC_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=1.0,
    max_delay=10.0,
    exponential=True,
)

RESUBSCRIBE_RETRY_CONFIG = RetryConfig(
    max_attempts=0,  # unbounded, the reconciler loops until closed
    base_delay=1.0,
    max_delay=60.0,
    exponential=True,
)
