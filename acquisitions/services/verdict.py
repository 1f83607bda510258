"""
Verdict providers: decide whether a request is allowed under a throttling rule.

A provider evaluates shield (attack patterns), bot detection and a sliding-window
rate limit, and answers with a tagged Verdict. Two implementations:

- SlidingWindowVerdictProvider counts with the `limits` library, in process by default
  or in a shared storage backend when THROTTLE_STORAGE_URI points at one.
- RemoteVerdictProvider delegates to an external decision API over HTTP.

Providers raise VerdictProviderError when they cannot reach a decision.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol
from urllib.parse import unquote

import httpx
from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter

if TYPE_CHECKING:
    from acquisitions.core.config import Settings

logger = logging.getLogger(__name__)

DenialReason = Literal["bot", "shield", "rate_limit"]


@dataclass(frozen=True)
class ThrottleRule:
    """Sliding-window limit: at most max_requests per window_seconds per caller key."""

    name: str
    window_seconds: int
    max_requests: int


@dataclass(frozen=True)
class RequestInfo:
    """What a provider needs to know about the incoming request."""

    client_ip: str
    method: str
    path: str
    query: str = ""
    user_agent: str = ""


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class Denied:
    reason: DenialReason


Verdict = Allowed | Denied


class VerdictProviderError(Exception):
    """Raised when a provider cannot decide (unreachable, timeout, malformed answer)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class VerdictProvider(Protocol):
    async def decide(self, rule: ThrottleRule, request: RequestInfo) -> Verdict: ...


# Request line patterns that indicate probing or injection attempts.
SHIELD_PATTERNS = (
    re.compile(r"\.\./|\.\.\\|%2e%2e(%2f|%5c|/)", re.IGNORECASE),
    re.compile(r"<\s*script|javascript:|onerror\s*=", re.IGNORECASE),
    re.compile(r"\bunion\b.+\bselect\b|'\s*or\s*'?1'?\s*=\s*'?1|;\s*drop\s+table", re.IGNORECASE),
    re.compile(r"/etc/passwd|\bcmd\.exe\b", re.IGNORECASE),
)

# User agents of scripted clients and crawlers.
BOT_USER_AGENT_PATTERN = re.compile(
    r"bot|crawl|spider|scrap|curl|wget|python-requests|python-urllib|httpclient|"
    r"go-http-client|libwww|headless|phantomjs",
    re.IGNORECASE,
)


def detect_shield(request: RequestInfo) -> bool:
    """True if the path or query string matches a known attack pattern."""
    target = unquote(f"{request.path}?{request.query}")
    raw = f"{request.path}?{request.query}"
    return any(p.search(target) or p.search(raw) for p in SHIELD_PATTERNS)


def detect_bot(request: RequestInfo) -> bool:
    """True for a missing user agent or one that identifies an automated client."""
    agent = request.user_agent.strip()
    if not agent:
        return True
    return BOT_USER_AGENT_PATTERN.search(agent) is not None


class SlidingWindowVerdictProvider:
    """
    Provider backed by a `limits` moving window, one counter per (rule name, caller key).

    Counters live in the configured `limits` storage: process memory by default, or a
    shared backend such as redis:// when several instances must agree. Denied
    requests are not recorded and expired entries are dropped by the storage.
    """

    def __init__(
        self,
        storage_uri: str = "memory://",
        shield_enabled: bool = True,
        bot_detection_enabled: bool = True,
    ) -> None:
        self.storage = storage_from_string(storage_uri)
        self._limiter = MovingWindowRateLimiter(self.storage)
        self._shield_enabled = shield_enabled
        self._bot_detection_enabled = bot_detection_enabled

    async def decide(self, rule: ThrottleRule, request: RequestInfo) -> Verdict:
        if self._shield_enabled and detect_shield(request):
            return Denied("shield")
        if self._bot_detection_enabled and detect_bot(request):
            return Denied("bot")
        try:
            allowed = await asyncio.to_thread(
                self._limiter.hit, _limit_item(rule), request.client_ip
            )
        except Exception as e:
            raise VerdictProviderError("Rate limit storage is unavailable.", cause=e) from e
        if not allowed:
            return Denied("rate_limit")
        return Allowed()

    def remaining(self, rule: ThrottleRule, key: str) -> int:
        """Requests still available to key inside the current window."""
        return self._limiter.get_window_stats(_limit_item(rule), key).remaining

    def reset(self) -> None:
        """Forget every counter."""
        self.storage.reset()


def _limit_item(rule: ThrottleRule) -> RateLimitItemPerSecond:
    return RateLimitItemPerSecond(rule.max_requests, rule.window_seconds, namespace=rule.name)


_REMOTE_REASONS: dict[str, DenialReason] = {
    "BOT": "bot",
    "SHIELD": "shield",
    "RATE_LIMIT": "rate_limit",
}


class RemoteVerdictProvider:
    """Ask an external decision API. Counters live on the remote side."""

    def __init__(self, base_url: str, api_key: str | None, timeout_seconds: float) -> None:
        self.url = f"{base_url.rstrip('/')}/v1/decide"
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def decide(self, rule: ThrottleRule, request: RequestInfo) -> Verdict:
        payload = {
            "rule": {
                "type": "sliding_window",
                "mode": "LIVE",
                "name": rule.name,
                "interval": rule.window_seconds,
                "max": rule.max_requests,
            },
            "request": {
                "ip": request.client_ip,
                "method": request.method,
                "path": request.path,
                "query": request.query,
                "user_agent": request.user_agent,
            },
        }
        timeout = httpx.Timeout(self.timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(self.url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise VerdictProviderError("Verdict provider request timed out.", cause=e) from e
        except httpx.HTTPError as e:
            raise VerdictProviderError("Verdict provider is unreachable.", cause=e) from e

        if response.status_code != 200:
            raise VerdictProviderError(
                f"Verdict provider returned status {response.status_code}."
            )
        try:
            body = response.json()
        except json.JSONDecodeError as e:
            raise VerdictProviderError(
                "Verdict provider response body is not valid JSON.", cause=e
            ) from e
        return _parse_remote_verdict(body)


def _parse_remote_verdict(body: object) -> Verdict:
    if not isinstance(body, dict):
        raise VerdictProviderError("Verdict provider response must be a JSON object.")
    conclusion = str(body.get("conclusion", "")).upper()
    if conclusion == "ALLOW":
        return Allowed()
    if conclusion == "DENY":
        reason = _REMOTE_REASONS.get(str(body.get("reason", "")).upper())
        if reason is None:
            raise VerdictProviderError(
                f"Verdict provider denied with unknown reason {body.get('reason')!r}."
            )
        return Denied(reason)
    raise VerdictProviderError(f"Verdict provider returned unknown conclusion {conclusion!r}.")


def build_verdict_provider(settings: "Settings") -> VerdictProvider:
    """Pick the provider configured by VERDICT_PROVIDER."""
    if settings.VERDICT_PROVIDER == "remote":
        api_key = (
            settings.VERDICT_API_KEY.get_secret_value() if settings.VERDICT_API_KEY else None
        )
        logger.info("Using remote verdict provider", extra={"verdict_url": settings.VERDICT_BASE_URL})
        return RemoteVerdictProvider(
            base_url=settings.VERDICT_BASE_URL or "",
            api_key=api_key,
            timeout_seconds=settings.VERDICT_TIMEOUT_SEC,
        )
    return SlidingWindowVerdictProvider(storage_uri=settings.THROTTLE_STORAGE_URI)
