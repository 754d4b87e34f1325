"""Unit tests for sw_common helpers."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from src.sw_common.datetime_utils import ensure_utc, minutes_between, utc_now
from src.sw_common.response import error_response, success_response


class TestDatetimeUtils:
    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is not None

    def test_naive_is_treated_as_utc(self) -> None:
        naive = datetime(2026, 3, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_offset_is_converted(self) -> None:
        plus_two = datetime(2026, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert ensure_utc(plus_two).hour == 12

    def test_minutes_between_mixed_awareness(self) -> None:
        start = datetime(2026, 3, 1, 12, 0)
        end = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)
        assert minutes_between(start, end) == 30


class TestResponse:
    def test_success_uses_request_state_id(self) -> None:
        request = SimpleNamespace(state=SimpleNamespace(request_id="req_abc"))
        resp = success_response({"x": 1}, request)  # type: ignore[arg-type]
        assert (resp.code, resp.data, resp.request_id) == (0, {"x": 1}, "req_abc")

    def test_error_without_request_gets_fresh_id(self) -> None:
        resp = error_response(3001, "Wager not found")
        assert resp.data is None
        assert resp.request_id.startswith("req_")
