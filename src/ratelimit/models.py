"""Rate limit scope, policy and decision models."""

import time
from dataclasses import dataclass
from enum import Enum


class ScopeKind(str, Enum):
    GLOBAL = "global"
    PER_CLIENT = "client"


class Action(str, Enum):
    UPLOAD = "upload"
    QUERY = "query"


@dataclass(frozen=True)
class RateLimitScope:
    kind: ScopeKind
    action: Action
    client_key: str | None = None  # requester address; None for GLOBAL

    def __post_init__(self):
        if self.kind is ScopeKind.PER_CLIENT and not self.client_key:
            raise ValueError("Per-client scope requires a client_key")
        if self.kind is ScopeKind.GLOBAL and self.client_key is not None:
            raise ValueError("Global scope takes no client_key")

    @classmethod
    def global_upload(cls) -> "RateLimitScope":
        return cls(ScopeKind.GLOBAL, Action.UPLOAD)

    @classmethod
    def client_upload(cls, client_key: str) -> "RateLimitScope":
        return cls(ScopeKind.PER_CLIENT, Action.UPLOAD, client_key)

    @classmethod
    def client_query(cls, client_key: str) -> "RateLimitScope":
        return cls(ScopeKind.PER_CLIENT, Action.QUERY, client_key)

    @property
    def policy_key(self) -> tuple[ScopeKind, Action]:
        return (self.kind, self.action)

    def store_key(self, prefix: str) -> str:
        parts = [prefix, self.kind.value, self.action.value]
        if self.client_key is not None:
            parts.append(self.client_key)
        return ":".join(parts)


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window_seconds: int

    def __post_init__(self):
        if self.limit < 1:
            raise ValueError("limit must be a positive integer")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be positive")


@dataclass
class RateLimitDecision:
    admitted: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds
    checked_at: float | None = None  # limiter clock at decision time

    def retry_after(self, now: float | None = None) -> float:
        """Seconds until the next attempt on this scope would be admitted."""
        if now is None:
            now = time.time() if self.checked_at is None else self.checked_at
        return max(0.0, round(self.reset_at - now, 1))


def default_policies(settings) -> dict[tuple[ScopeKind, Action], RateLimitPolicy]:
    """Build the three scope policies from settings."""
    window = settings.rate_limit_window_seconds
    return {
        (ScopeKind.GLOBAL, Action.UPLOAD): RateLimitPolicy(settings.global_upload_limit, window),
        (ScopeKind.PER_CLIENT, Action.UPLOAD): RateLimitPolicy(settings.client_upload_limit, window),
        (ScopeKind.PER_CLIENT, Action.QUERY): RateLimitPolicy(settings.client_query_limit, window),
    }
