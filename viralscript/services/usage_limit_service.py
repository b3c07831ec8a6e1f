"""
Usage Limit Service - daily script generation quota.

Free plan: Config.FREE_DAILY_LIMIT generations per day. Pro plan: unlimited.

Usage:
    from viralscript.services.usage_limit_service import UsageLimitService, UsageLimitExceeded

    service = UsageLimitService(counter)
    service.enforce_limit(UserPlan.FREE)  # Raises UsageLimitExceeded if over
"""

import logging
from typing import Optional, Union

from ..core.config import Config
from ..core.exceptions import ViralScriptError
from .collaborators import UsageCounter
from .models import UserPlan

logger = logging.getLogger(__name__)


class UsageLimitExceeded(ViralScriptError):
    """Raised when a plan's daily generation quota is used up."""

    def __init__(self, plan: str, limit_value: int, current_usage: int):
        self.plan = plan
        self.limit_value = limit_value
        self.current_usage = current_usage
        super().__init__(
            f"Daily limit reached for {plan} plan: {current_usage} / {limit_value}",
            {"plan": plan, "limit_value": limit_value, "current_usage": current_usage},
        )


class UsageLimitService:
    """Checks and records daily usage against the plan limit."""

    def __init__(self, counter: UsageCounter, free_daily_limit: Optional[int] = None):
        """
        Args:
            counter: Daily usage counter collaborator
            free_daily_limit: Override for the free-plan ceiling (default Config.FREE_DAILY_LIMIT)
        """
        self.counter = counter
        self.free_daily_limit = free_daily_limit if free_daily_limit is not None else Config.FREE_DAILY_LIMIT
        # Generations reserved but not yet recorded
        self.pending = 0

    def get_limit(self, plan: Union[UserPlan, str]) -> Optional[int]:
        """Daily ceiling for a plan, or None when unlimited."""
        if UserPlan(plan) == UserPlan.PRO:
            return None
        return self.free_daily_limit

    def check_limit(self, plan: Union[UserPlan, str]) -> bool:
        """True if another generation is allowed today."""
        limit = self.get_limit(plan)
        if limit is None:
            return True
        return self.counter.get() + self.pending < limit

    def enforce_limit(self, plan: Union[UserPlan, str]) -> None:
        """
        Raise if the plan's daily quota is used up.

        Raises:
            UsageLimitExceeded: If today's count plus in-flight reservations has reached the plan limit
        """
        limit = self.get_limit(plan)
        if limit is None:
            return
        current = self.counter.get() + self.pending
        if current >= limit:
            logger.warning(f"Daily limit reached: {current}/{limit} ({UserPlan(plan).value} plan)")
            raise UsageLimitExceeded(UserPlan(plan).value, limit, current)

    def reserve(self, plan: Union[UserPlan, str]) -> None:
        """
        Claim a slot for a generation about to start.

        Check and claim happen without yielding to the event loop, so
        concurrent callers cannot all pass the same check. Pair with
        release() once the generation is recorded or has failed.

        Raises:
            UsageLimitExceeded: If no slot is left today
        """
        self.enforce_limit(plan)
        self.pending += 1

    def release(self) -> None:
        """Give back a slot claimed by reserve()."""
        self.pending = max(0, self.pending - 1)

    def record_usage(self) -> int:
        """Count one successful generation. Returns today's new total."""
        count = self.counter.increment()
        logger.debug(f"Daily usage now {count}")
        return count
