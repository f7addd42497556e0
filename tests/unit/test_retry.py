"""Unit tests for the async retry decorator."""

from __future__ import annotations

import pytest

from talentgate.exceptions import RoleLookupError
from talentgate.utils.retry import retry


@pytest.mark.unit
class TestRetry:
    async def test_retries_then_succeeds(self) -> None:
        calls = 0

        @retry(max_attempts=3, delay_ms=0)
        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise RoleLookupError("transient")
            return "ok"

        assert await flaky() == "ok"
        assert calls == 3

    async def test_gives_up_after_max_attempts(self) -> None:
        calls = 0

        @retry(max_attempts=2, delay_ms=0)
        async def broken() -> None:
            nonlocal calls
            calls += 1
            raise RoleLookupError("down")

        with pytest.raises(RoleLookupError):
            await broken()
        assert calls == 2

    async def test_other_exceptions_not_retried(self) -> None:
        calls = 0

        @retry(max_attempts=3, delay_ms=0, retry_on=(RoleLookupError,))
        async def bug() -> None:
            nonlocal calls
            calls += 1
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await bug()
        assert calls == 1
