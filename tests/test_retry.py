"""Tests for the throttling retry decorator."""

from unittest.mock import patch

import pytest
from hypothesis import given, settings, strategies as st

from reelgen.utils.exceptions import RateLimitError, SpeechSynthesisError
from reelgen.utils.retry import backoff_delay, retry_async


class TestBackoffDelay:

    @settings(max_examples=100)
    @given(
        attempt=st.integers(min_value=0, max_value=10),
        base_delay=st.floats(min_value=0.01, max_value=5),
        max_delay=st.floats(min_value=0.01, max_value=60),
    )
    def test_never_exceeds_max(self, attempt: int, base_delay: float, max_delay: float) -> None:
        delay = backoff_delay(attempt, base_delay, max_delay, jitter=False)
        assert 0 < delay <= max_delay

    def test_exponential_without_jitter(self) -> None:
        assert [backoff_delay(n, 1.0, 30.0, jitter=False) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_server_hint_wins(self) -> None:
        assert backoff_delay(0, 1.0, 30.0, retry_after=7) == 7.0
        assert backoff_delay(0, 1.0, 30.0, retry_after=120) == 30.0


class TestRetryAsync:

    @pytest.mark.asyncio
    async def test_rate_limits_are_retried(self) -> None:
        calls = []
        delays = []

        async def fake_sleep(delay: float) -> None:
            delays.append(delay)

        @retry_async(max_retries=2, base_delay=1.0, jitter=False)
        async def flaky() -> str:
            calls.append(1)
            if len(calls) < 3:
                raise RateLimitError("Gemini")
            return "ok"

        with patch("reelgen.utils.retry.asyncio.sleep", fake_sleep):
            assert await flaky() == "ok"

        assert len(calls) == 3
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        calls = []

        async def fake_sleep(delay: float) -> None:
            pass

        @retry_async(max_retries=2, base_delay=0)
        async def throttled() -> None:
            calls.append(1)
            raise RateLimitError("ElevenLabs", retry_after=1)

        with patch("reelgen.utils.retry.asyncio.sleep", fake_sleep):
            with pytest.raises(RateLimitError) as exc_info:
                await throttled()

        assert len(calls) == 3
        assert "quota exceeded" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self) -> None:
        calls = []

        @retry_async(max_retries=3)
        async def broken() -> None:
            calls.append(1)
            raise SpeechSynthesisError("Invalid text for speech generation. Please try again.")

        with pytest.raises(SpeechSynthesisError):
            await broken()
        assert len(calls) == 1
