"""Document Q&A Gateway — FastAPI application entry point.

A client uploads a PDF once, then asks a bounded number of questions
about it. Every request passes through sliding-window admission control
backed by a shared counter store, and uploaded text lives in a session
that expires after a fixed horizon.
"""

import json
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config.settings import Settings, get_settings
from src.core.errors import (
    GatewayError,
    InvalidRequest,
    PayloadTooLarge,
    RateLimitExceeded,
    UnsupportedMediaType,
)
from src.gateway import Gateway, build_gateway
from src.logging.audit import (
    client_ip_var,
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)
from src.ratelimit.models import RateLimitDecision

VERSION = "1.0.0"
ALLOWED_CONTENT_TYPES = {"application/pdf"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    settings = get_settings()
    if getattr(app.state, "gateway", None) is None:
        app.state.gateway = build_gateway(settings)
    get_audit_logger().info(
        "Gateway started",
        extra={"audit_data": {"counter_store": settings.counter_store_backend}},
    )
    yield
    await app.state.gateway.close()
    del app.state.gateway
    get_audit_logger().info("Gateway stopped")


app = FastAPI(
    title="Document Q&A Gateway",
    description="Rate-limited PDF upload and question answering",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining",
                    "X-RateLimit-Reset", "X-Request-Id"],
)


def get_gateway(request: Request) -> Gateway:
    """Return the gateway wired at startup."""
    return request.app.state.gateway


def client_address(request: Request, settings: Settings) -> str:
    """Identify the requester by network address."""
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


def _rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.retry_after())),
    }


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    logger = get_audit_logger()
    audit = {
        "path": request.url.path,
        "client_ip": client_address(request, get_settings()),
        "code": exc.code,
        "kind": exc.kind,
        **exc.data,
    }
    if exc.retryable:
        logger.error(exc.message, extra={"audit_data": audit})
    else:
        logger.warning(exc.message, extra={"audit_data": audit})

    headers = {}
    if isinstance(exc, RateLimitExceeded):
        headers = _rate_limit_headers(exc.decision)
        headers["X-RateLimit-Remaining"] = "0"
        headers["Retry-After"] = str(int(exc.decision.retry_after()))
    rid = request_id_var.get("")
    if rid:
        headers["X-Request-Id"] = rid

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.post("/api/upload", status_code=201)
async def upload_document(
    request: Request,
    pdf: UploadFile | None = File(None),
    gateway: Gateway = Depends(get_gateway),
):
    """Upload a PDF and open a question session.

    Pipeline: Global Limit -> Client Limit -> Validate -> Extract -> Session
    """
    settings = get_settings()
    rid = generate_request_id()
    request_id_var.set(rid)
    client_ip = client_address(request, settings)
    client_ip_var.set(client_ip)

    data = b""
    if pdf is not None:
        if pdf.content_type not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedMediaType("Only PDF files are allowed")
        # Read one byte past the limit to detect oversize without loading it all
        data = await pdf.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            raise PayloadTooLarge(
                f"File exceeds the {settings.max_upload_bytes // (1024 * 1024)}MB limit"
            )

    result = await gateway.upload.run(client_ip, data)

    headers = _rate_limit_headers(result.decision)
    headers["X-Request-Id"] = rid
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "session_id": result.session_id,
            "expires_at": result.expires_at,
            "truncated": result.truncated,
        },
        headers=headers,
    )


@app.post("/api/query")
async def query_document(request: Request, gateway: Gateway = Depends(get_gateway)):
    """Ask a question about a previously uploaded PDF.

    Pipeline: Validate -> Client Limit -> Session Lookup -> Completion
    """
    settings = get_settings()
    rid = generate_request_id()
    request_id_var.set(rid)
    client_ip = client_address(request, settings)
    client_ip_var.set(client_ip)

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequest("Request body must be JSON") from None
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")

    session_id = body.get("session_id")
    question = body.get("question")
    if not isinstance(session_id, (str, type(None))) or not isinstance(question, (str, type(None))):
        raise InvalidRequest("session_id and question must be strings")

    result = await gateway.query.run(client_ip, session_id, question)

    headers = _rate_limit_headers(result.decision)
    headers["X-Request-Id"] = rid
    return JSONResponse(
        content={"success": True, "answer": result.answer},
        headers=headers,
    )
