"""
Recovery strategy classifications for error handling.

These mixins categorize errors by whether the user can simply try again.
"""


class RecoverableError(Exception):
    """Mixin for errors the user can recover from by retrying."""

    def __init__(self, message: str, retry_count: int = 0,
                 max_retries: int = 3, **kwargs):
        super().__init__(message)
        self.retry_count = retry_count
        self.max_retries = max_retries
        self.recoverable = True

    @property
    def can_retry(self) -> bool:
        return self.retry_count < self.max_retries
