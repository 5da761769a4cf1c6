"""
Retry logic and error tracking for remote calls.

Transient transport failures on idempotent requests are retried with
exponential backoff. Every recorded failure is kept in a bounded history
for diagnostics.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from .exceptions import TransportError


class ErrorHandler:
    """
    Error handler with retry logic and error tracking.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Backoff multiplier
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2
    ):
        self.logger = logging.getLogger(__name__)
        self.error_history: List[Dict[str, Any]] = []
        self.max_history = 1000

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    def record_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Record an error in the error history.

        Args:
            error: The exception that occurred
            context: Optional context information
        """
        self.error_history.append({
            'timestamp': datetime.now().isoformat(),
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context or {}
        })

        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history:]

    def get_delay(self, attempt: int) -> float:
        """Backoff delay before retry number ``attempt + 1``."""
        return min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)

    async def retry_async(
        self,
        func: Callable,
        *args,
        exceptions: Tuple[Type[Exception], ...] = (TransportError,),
        context: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> Any:
        """
        Execute an async function with automatic retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            exceptions: Tuple of exceptions to catch and retry
            context: Optional context for error recording
            **kwargs: Keyword arguments for func

        Returns:
            Result of the function call

        Raises:
            The last exception if all retries fail
        """
        name = getattr(func, '__name__', repr(func))

        for attempt in range(self.max_retries + 1):
            try:
                return await func(*args, **kwargs)
            except exceptions as e:
                self.record_error(e, context)

                if attempt == self.max_retries:
                    if self.max_retries:
                        self.logger.error(f"All {self.max_retries} retries failed for {name}: {e}")
                    raise

                delay = self.get_delay(attempt)
                self.logger.warning(
                    f"Attempt {attempt + 1}/{self.max_retries + 1} failed for {name}: {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await asyncio.sleep(delay)

    def get_error_statistics(self) -> Dict[str, Any]:
        """
        Get error statistics from the error history.

        Returns:
            Dict containing error statistics
        """
        if not self.error_history:
            return {
                'total_errors': 0,
                'error_types': {},
                'recent_errors': []
            }

        error_types: Dict[str, int] = {}
        for error in self.error_history:
            error_type = error['error_type']
            error_types[error_type] = error_types.get(error_type, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'error_types': error_types,
            'recent_errors': self.error_history[-10:],
            'oldest_error': self.error_history[0]['timestamp'],
            'newest_error': self.error_history[-1]['timestamp']
        }
