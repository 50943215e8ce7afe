"""Query pipeline: validation -> admission -> session -> completion.

Pipeline: Validate -> Client Limit -> Session Lookup -> Completion

The rate check runs before the session lookup so an exhausted client is
turned away without touching session state or the completion provider.
"""

from dataclasses import dataclass

from src.core.errors import (
    ClientQueryLimitExceeded,
    CompletionFailed,
    InvalidRequest,
    SessionExpiredOrInvalid,
)
from src.logging.audit import RequestTimer, get_audit_logger
from src.providers.base import CompletionProvider
from src.ratelimit.limiter import SlidingWindowLimiter
from src.ratelimit.models import RateLimitDecision, RateLimitScope
from src.sessions.store import SessionStore

DEFAULT_MAX_QUESTION_CHARS = 250


@dataclass
class QueryResult:
    answer: str
    decision: RateLimitDecision


def validate_question(session_id: str | None, question: str | None,
                      max_chars: int = DEFAULT_MAX_QUESTION_CHARS) -> str:
    """Return the trimmed question, or raise InvalidRequest."""
    if not session_id or not session_id.strip():
        raise InvalidRequest("Session ID is required")
    trimmed = (question or "").strip()
    if not trimmed or len(trimmed) > max_chars:
        raise InvalidRequest(f"Question must be 1-{max_chars} characters")
    return trimmed


class QueryPipeline:

    def __init__(
        self,
        limiter: SlidingWindowLimiter,
        sessions: SessionStore,
        provider: CompletionProvider,
        *,
        max_question_chars: int = DEFAULT_MAX_QUESTION_CHARS,
    ):
        self._limiter = limiter
        self._sessions = sessions
        self._provider = provider
        self._max_question_chars = max_question_chars

    async def run(self, client_key: str, session_id: str | None, question: str | None) -> QueryResult:
        logger = get_audit_logger()

        # 1. Request shape (no limiter or store touched yet)
        question = validate_question(session_id, question, self._max_question_chars)
        session_id = session_id.strip()

        # 2. Per-client query budget
        decision = await self._limiter.check(RateLimitScope.client_query(client_key))
        if not decision.admitted:
            logger.warning(
                "Client query limit exceeded",
                extra={"audit_data": {
                    "client_ip": client_key,
                    "rate_limit": decision.limit,
                    "reset_at": decision.reset_at,
                }},
            )
            raise ClientQueryLimitExceeded(
                f"Daily query limit reached: Max {decision.limit} questions per day.",
                decision,
            )

        # 3. Session lookup
        text = await self._sessions.get(session_id)
        if text is None:
            raise SessionExpiredOrInvalid(
                "Session expired or invalid. Please upload the PDF again."
            )

        # 4. Completion
        with RequestTimer() as timer:
            try:
                answer = await self._provider.answer(text, question)
            except CompletionFailed:
                raise
            except Exception as e:
                # Unknown provider failures still surface as upstream errors
                raise CompletionFailed(str(e) or "Server error") from e

        logger.info(
            "Question answered",
            extra={"audit_data": {
                "client_ip": client_key,
                "session_id": session_id,
                "question_chars": len(question),
                "latency_ms": timer.elapsed_ms,
                "rate_limit_remaining": decision.remaining,
            }},
        )

        return QueryResult(answer=answer.strip(), decision=decision)
