"""
Exception hierarchy for governance-sync.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, network)
- NonRetryableException: Permanent failures that won't benefit from retry (bad data)
- ConfigurationException: Startup/config errors that prevent operation

Ledger sync errors are categorized:
- TransientReadError -> RetryableException (single record read failed, keep stale value)
- SubscriptionError -> RetryableException (event feed dropped, resubscribe)
- DecodeError -> NonRetryableException (record cannot be parsed, drop it)
- ThresholdUnavailable -> NonRetryableException (quorum never fetched)
- TransactionError -> NonRetryableException (vote transaction reverted)
"""

from typing import Optional


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Missing required data
    - Business logic violations
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Invalid configuration values
    """

    pass


class TransientReadError(RetryableException):
    """
    A single ledger read failed.

    The caller keeps whatever value it already had for the record.
    """

    def __init__(self, message: str, proposal_id: Optional[int] = None):
        super().__init__(message)
        self.proposal_id = proposal_id


class SubscriptionError(RetryableException):
    """
    The event feed dropped.

    The local view becomes possibly stale until the feed is resubscribed.
    """

    pass


class DecodeError(NonRetryableException):
    """A ledger record could not be parsed into a Proposal."""

    def __init__(self, message: str, proposal_id: Optional[int] = None):
        super().__init__(message)
        self.proposal_id = proposal_id


class ThresholdUnavailable(NonRetryableException):
    """The quorum threshold was never successfully fetched."""

    pass


class TransactionError(NonRetryableException):
    """A submitted transaction was mined with a failed status."""

    pass
