"""
Tests for UsageLimitService.
"""

import pytest

from viralscript.services.collaborators import InMemoryUsageCounter
from viralscript.services.models import UserPlan
from viralscript.services.usage_limit_service import UsageLimitExceeded, UsageLimitService


def _make_service(used=0, limit=3):
    counter = InMemoryUsageCounter()
    for _ in range(used):
        counter.increment()
    return UsageLimitService(counter, free_daily_limit=limit)


class TestLimits:
    def test_free_limit(self):
        assert _make_service().get_limit(UserPlan.FREE) == 3

    def test_pro_is_unlimited(self):
        service = _make_service(used=50)
        assert service.get_limit("pro") is None
        assert service.check_limit(UserPlan.PRO)
        service.enforce_limit(UserPlan.PRO)

    def test_check_limit(self):
        assert _make_service(used=2).check_limit(UserPlan.FREE)
        assert not _make_service(used=3).check_limit(UserPlan.FREE)


class TestEnforce:
    def test_under_limit_passes(self):
        _make_service(used=2).enforce_limit(UserPlan.FREE)

    def test_at_limit_raises(self):
        with pytest.raises(UsageLimitExceeded) as exc_info:
            _make_service(used=3).enforce_limit("free")

        error = exc_info.value
        assert error.plan == "free"
        assert error.limit_value == 3
        assert error.current_usage == 3
        assert "3 / 3" in str(error)

    def test_record_usage(self):
        service = _make_service()
        assert service.record_usage() == 1
        assert service.record_usage() == 2


class TestReservations:
    def test_reservations_count_against_limit(self):
        service = _make_service(used=1)
        service.reserve(UserPlan.FREE)
        service.reserve(UserPlan.FREE)

        assert not service.check_limit(UserPlan.FREE)
        with pytest.raises(UsageLimitExceeded) as exc_info:
            service.reserve(UserPlan.FREE)
        assert exc_info.value.current_usage == 3
        assert service.pending == 2

    def test_release_frees_slot(self):
        service = _make_service(used=2)
        service.reserve(UserPlan.FREE)
        service.release()

        assert service.pending == 0
        assert service.check_limit(UserPlan.FREE)

    def test_release_never_goes_negative(self):
        service = _make_service()
        service.release()
        assert service.pending == 0
