"""Wires the store, limiter, session store and pipelines together.

The gateway is built once per application (see ``src.main``) and handed
to request handlers explicitly; nothing here is a module-level singleton.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from src.config.settings import Settings
from src.extraction.base import TextExtractor
from src.pipeline.query import QueryPipeline
from src.pipeline.upload import UploadPipeline
from src.providers.base import CompletionProvider
from src.ratelimit.limiter import SlidingWindowLimiter
from src.ratelimit.models import default_policies
from src.sessions.store import SessionStore
from src.store.base import CounterStore
from src.store.factory import build_counter_store


@dataclass
class Gateway:
    store: CounterStore
    limiter: SlidingWindowLimiter
    sessions: SessionStore
    provider: CompletionProvider
    upload: UploadPipeline
    query: QueryPipeline

    async def close(self) -> None:
        await self.provider.close()
        await self.store.close()


def build_gateway(
    settings: Settings,
    *,
    store: CounterStore | None = None,
    extractor: TextExtractor | None = None,
    provider: CompletionProvider | None = None,
    clock: Callable[[], float] = time.time,
) -> Gateway:
    """Build a gateway from settings; any collaborator can be overridden."""
    if store is None:
        store = build_counter_store(settings)
    if extractor is None:
        from src.extraction.pdf import PdfTextExtractor
        extractor = PdfTextExtractor()
    if provider is None:
        from src.providers.openai import OpenAICompatibleProvider
        provider = OpenAICompatibleProvider(settings)

    limiter = SlidingWindowLimiter(
        store,
        default_policies(settings),
        bucket_seconds=settings.rate_limit_bucket_seconds,
        prefix=settings.rate_limit_prefix,
        clock=clock,
    )
    sessions = SessionStore(
        store,
        ttl_seconds=settings.session_ttl_seconds,
        max_chars=settings.session_max_chars,
        clock=clock,
    )

    return Gateway(
        store=store,
        limiter=limiter,
        sessions=sessions,
        provider=provider,
        upload=UploadPipeline(
            limiter,
            sessions,
            extractor,
            max_upload_bytes=settings.max_upload_bytes,
            max_chars=settings.session_max_chars,
        ),
        query=QueryPipeline(
            limiter,
            sessions,
            provider,
            max_question_chars=settings.max_question_chars,
        ),
    )
