"""Upload pipeline: admission -> validation -> extraction -> session.

Pipeline: Global Limit -> Client Limit -> Validate -> Extract -> Create Session

The global limit is checked first so the shared budget is protected even
when a client would pass its own check. Both checks run before any
extraction work.
"""

from dataclasses import dataclass

from src.core.errors import (
    ClientUploadLimitExceeded,
    ExtractionFailed,
    GlobalUploadLimitExceeded,
    InvalidRequest,
    PayloadTooLarge,
    UnsupportedMediaType,
)
from src.extraction.base import TextExtractor
from src.extraction.pdf import looks_like_pdf
from src.logging.audit import RequestTimer, get_audit_logger
from src.ratelimit.limiter import SlidingWindowLimiter
from src.ratelimit.models import RateLimitDecision, RateLimitScope
from src.sessions.store import SessionStore

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass
class UploadResult:
    session_id: str
    expires_at: float
    truncated: bool
    decision: RateLimitDecision  # per-client upload decision


class UploadPipeline:

    def __init__(
        self,
        limiter: SlidingWindowLimiter,
        sessions: SessionStore,
        extractor: TextExtractor,
        *,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        max_chars: int = 30_000,
    ):
        self._limiter = limiter
        self._sessions = sessions
        self._extractor = extractor
        self._max_upload_bytes = max_upload_bytes
        self._max_chars = max_chars

    async def run(self, client_key: str, data: bytes) -> UploadResult:
        logger = get_audit_logger()

        # 1. Global upload budget (shared by every client)
        global_decision = await self._limiter.check(RateLimitScope.global_upload())
        if not global_decision.admitted:
            logger.warning(
                "Global upload limit exceeded",
                extra={"audit_data": {
                    "client_ip": client_key,
                    "rate_limit": global_decision.limit,
                    "reset_at": global_decision.reset_at,
                }},
            )
            raise GlobalUploadLimitExceeded(
                "Daily upload capacity reached. Please try again later.",
                global_decision,
            )

        # 2. Per-client upload budget
        decision = await self._limiter.check(RateLimitScope.client_upload(client_key))
        if not decision.admitted:
            logger.warning(
                "Client upload limit exceeded",
                extra={"audit_data": {
                    "client_ip": client_key,
                    "rate_limit": decision.limit,
                    "reset_at": decision.reset_at,
                }},
            )
            raise ClientUploadLimitExceeded(
                f"Only {decision.limit} PDF upload(s) allowed per day.",
                decision,
            )

        # 3. Payload precondition
        self._validate(data)

        # 4. Extraction
        with RequestTimer() as timer:
            text = await self._extractor.extract(data)
        if not text.strip():
            raise ExtractionFailed("PDF contains no extractable text")

        # 5. Session
        session = await self._sessions.create_session(text)
        truncated = len(text) > self._max_chars

        logger.info(
            "Session created",
            extra={"audit_data": {
                "client_ip": client_key,
                "session_id": session.id,
                "payload_bytes": len(data),
                "text_chars": len(text),
                "truncated": truncated,
                "extract_ms": timer.elapsed_ms,
                "rate_limit_remaining": decision.remaining,
                "global_remaining": global_decision.remaining,
            }},
        )

        return UploadResult(
            session_id=session.id,
            expires_at=session.expires_at,
            truncated=truncated,
            decision=decision,
        )

    def _validate(self, data: bytes) -> None:
        if not data:
            raise InvalidRequest("PDF file is required")
        if len(data) > self._max_upload_bytes:
            raise PayloadTooLarge(
                f"File exceeds the {self._max_upload_bytes // (1024 * 1024)}MB limit"
            )
        if not looks_like_pdf(data):
            raise UnsupportedMediaType("Only PDF files are allowed")
