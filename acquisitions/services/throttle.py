"""
Role-tiered request throttling.

The gate maps the caller's role (guest when unauthenticated) to a policy, asks the
verdict provider for a decision under a rule named after that tier, and reports
Proceed, Reject or Fail. It never raises and never lets a request through when the
provider cannot answer.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from acquisitions.schemas.auth import Identity
from acquisitions.services.verdict import (
    Allowed,
    DenialReason,
    Denied,
    RequestInfo,
    ThrottleRule,
    VerdictProvider,
)

if TYPE_CHECKING:
    from acquisitions.core.config import Settings

logger = logging.getLogger(__name__)

ThrottleRole = Literal["guest", "user", "admin"]

# Lowest to highest privilege; limits must not shrink along this order.
ROLE_ORDER: tuple[ThrottleRole, ...] = ("guest", "user", "admin")

BLOCKED_MESSAGE = "Automated requests are not allowed."
RATE_LIMITED_MESSAGE = "Too many requests. Please slow down."
FAILURE_MESSAGE = "Something went wrong with the security middleware."


@dataclass(frozen=True)
class ThrottlePolicy:
    role: ThrottleRole
    window_seconds: int
    max_requests: int
    label: str


class ThrottleConfig:
    """Role -> policy table handed to the gate."""

    def __init__(self, policies: list[ThrottlePolicy]) -> None:
        by_role = {p.role: p for p in policies}
        missing = [r for r in ROLE_ORDER if r not in by_role]
        if missing:
            raise ValueError(f"Throttle policies missing for roles: {', '.join(missing)}")
        for p in by_role.values():
            if p.window_seconds <= 0 or p.max_requests <= 0:
                raise ValueError(
                    f"Throttle policy for '{p.role}' needs a positive window and request limit"
                )
        for lower, higher in zip(ROLE_ORDER, ROLE_ORDER[1:]):
            lo, hi = by_role[lower], by_role[higher]
            if hi.max_requests / hi.window_seconds < lo.max_requests / lo.window_seconds:
                raise ValueError(
                    f"Throttle policy for '{higher}' must not be stricter than for '{lower}'"
                )
        self._policies: dict[str, ThrottlePolicy] = dict(by_role)

    def policy_for(self, role: str) -> ThrottlePolicy:
        """Policy for role; anything unrecognised is treated as guest."""
        return self._policies.get(role, self._policies["guest"])

    @classmethod
    def default(cls, window_seconds: int = 60) -> "ThrottleConfig":
        return cls(
            [
                ThrottlePolicy("guest", window_seconds, 5, "Guest rate limit"),
                ThrottlePolicy("user", window_seconds, 10, "User rate limit"),
                ThrottlePolicy("admin", window_seconds, 20, "Admin rate limit"),
            ]
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ThrottleConfig":
        window = settings.THROTTLE_WINDOW_SEC
        return cls(
            [
                ThrottlePolicy("guest", window, settings.THROTTLE_GUEST_MAX, "Guest rate limit"),
                ThrottlePolicy("user", window, settings.THROTTLE_USER_MAX, "User rate limit"),
                ThrottlePolicy("admin", window, settings.THROTTLE_ADMIN_MAX, "Admin rate limit"),
            ]
        )


@dataclass(frozen=True)
class Proceed:
    pass


@dataclass(frozen=True)
class Reject:
    reason: DenialReason
    status_code: int
    error: str
    message: str


@dataclass(frozen=True)
class Fail:
    detail: str


ThrottleOutcome = Proceed | Reject | Fail


def rule_for(policy: ThrottlePolicy) -> ThrottleRule:
    """One rule per tier so guest, user and admin traffic never share a bucket."""
    return ThrottleRule(
        name=f"{policy.role}-rate-limit",
        window_seconds=policy.window_seconds,
        max_requests=policy.max_requests,
    )


class ThrottleGate:
    def __init__(
        self,
        config: ThrottleConfig,
        provider: VerdictProvider,
        timeout_seconds: float = 2.0,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.dry_run = dry_run

    async def throttle(self, identity: Identity | None, request: RequestInfo) -> ThrottleOutcome:
        role = identity.role if identity is not None else "guest"
        policy = self.config.policy_for(role)
        rule = rule_for(policy)

        try:
            verdict = await asyncio.wait_for(
                self.provider.decide(rule, request), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(
                "Verdict provider timed out",
                extra={"rule": rule.name, "timeout_seconds": self.timeout_seconds},
            )
            return Fail(detail="verdict provider timed out")
        except Exception as e:
            logger.error(
                "Verdict provider error: %s",
                getattr(e, "message", None) or str(e),
                extra={"rule": rule.name},
            )
            return Fail(detail=str(e)[:500])

        if isinstance(verdict, Allowed):
            return Proceed()
        if not isinstance(verdict, Denied):
            logger.error("Verdict provider returned %r", verdict, extra={"rule": rule.name})
            return Fail(detail="unrecognised verdict")

        outcome = self._reject(verdict.reason, request, policy)
        if self.dry_run:
            logger.info("Dry run: denial not enforced", extra={"rule": rule.name})
            return Proceed()
        return outcome

    def _reject(self, reason: DenialReason, request: RequestInfo, policy: ThrottlePolicy) -> Reject:
        if reason == "bot":
            logger.warning(
                "Bot request blocked",
                extra={
                    "ip": request.client_ip,
                    "path": request.path,
                    "user_agent": request.user_agent,
                },
            )
            return Reject(reason, 403, "Forbidden", BLOCKED_MESSAGE)
        if reason == "shield":
            logger.warning(
                "Shield request blocked",
                extra={
                    "ip": request.client_ip,
                    "path": request.path,
                    "user_agent": request.user_agent,
                    "method": request.method,
                },
            )
            return Reject(reason, 403, "Forbidden", BLOCKED_MESSAGE)
        logger.warning(
            "Rate limit exceeded",
            extra={
                "ip": request.client_ip,
                "path": request.path,
                "user_agent": request.user_agent,
                "method": request.method,
                "policy": f"{policy.label} ({policy.max_requests} per {policy.window_seconds}s)",
            },
        )
        return Reject(reason, 429, "Too Many Requests", RATE_LIMITED_MESSAGE)


def build_throttle_gate(settings: "Settings", provider: VerdictProvider) -> ThrottleGate:
    return ThrottleGate(
        config=ThrottleConfig.from_settings(settings),
        provider=provider,
        timeout_seconds=settings.VERDICT_TIMEOUT_SEC,
        dry_run=settings.THROTTLE_DRY_RUN,
    )
