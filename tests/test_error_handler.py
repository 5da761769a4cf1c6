"""
Unit tests for the error handler module.
"""

import pytest
from unittest.mock import AsyncMock, patch

from game_session_client.error_handler import ErrorHandler
from game_session_client.exceptions import ApiError, TransportError


class TestErrorHandler:
    """Test the ErrorHandler class."""

    def test_error_handler_creation(self):
        handler = ErrorHandler()

        assert handler.error_history == []
        assert handler.max_history == 1000
        assert handler.max_retries == 2

    def test_backoff_is_exponential_and_capped(self):
        handler = ErrorHandler(base_delay=1.0, max_delay=5.0)

        assert [handler.get_delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_record_error_respects_history_limit(self):
        handler = ErrorHandler()
        handler.max_history = 3

        for i in range(5):
            handler.record_error(TransportError("Network error", str(i)))

        assert len(handler.error_history) == 3
        assert handler.error_history[-1]['error_message'] == "Network error: 4"

    @pytest.mark.asyncio
    async def test_retry_until_success(self):
        handler = ErrorHandler(max_retries=3, base_delay=0)
        func = AsyncMock(side_effect=[TransportError(), TransportError(), "done"])

        with patch('game_session_client.error_handler.asyncio.sleep', new=AsyncMock()) as sleep:
            result = await handler.retry_async(func, "GET", context={'path': 'x'})

        assert result == "done"
        assert func.await_count == 3
        assert sleep.await_count == 2
        assert handler.error_history[0]['context'] == {'path': 'x'}

    @pytest.mark.asyncio
    async def test_retry_exhausted_raises_last_error(self):
        handler = ErrorHandler(max_retries=2, base_delay=0)
        func = AsyncMock(side_effect=TransportError("Network error", "refused"))

        with pytest.raises(TransportError):
            await handler.retry_async(func)

        assert func.await_count == 3
        assert len(handler.error_history) == 3

    @pytest.mark.asyncio
    async def test_no_retry_for_other_errors(self):
        handler = ErrorHandler(max_retries=5, base_delay=0)
        func = AsyncMock(side_effect=ApiError("bad credentials"))

        with pytest.raises(ApiError):
            await handler.retry_async(func)

        assert func.await_count == 1
        assert handler.error_history == []

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self):
        handler = ErrorHandler(max_retries=0)
        func = AsyncMock(side_effect=TransportError())

        with pytest.raises(TransportError):
            await handler.retry_async(func)

        assert func.await_count == 1

    def test_error_statistics(self):
        handler = ErrorHandler()
        assert handler.get_error_statistics()['total_errors'] == 0

        handler.record_error(TransportError())
        handler.record_error(TransportError())
        handler.record_error(ApiError())

        stats = handler.get_error_statistics()
        assert stats['total_errors'] == 3
        assert stats['error_types'] == {'TransportError': 2, 'ApiError': 1}
