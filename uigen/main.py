import logging
import os
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from uigen import agent, llm_client
from uigen import ratelimit as _rl_mod
from uigen.errors import CompileError, GenerationError
from uigen.redis_ratelimit import RedisRateLimiter
from uigen.render import build_component_factory, render_host_page, render_preview_document
from uigen.sanitizer import sanitize
from uigen.validators import collect_errors, extract_component_usage, scan_component_tags

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

EXPORT_FILENAME = "generated-ui.tsx"

app = FastAPI(title="uigen")

allow_origins = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    # /generate reports every bad body as a client error in its own {error} shape
    if request.url.path == "/generate":
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})
    return await request_validation_exception_handler(request, exc)


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_intent: str = Field("", alias="userIntent", description="What the user wants built or changed")
    current_code: Optional[str] = Field("", alias="currentCode", description="Code from the previous turn, if any")
    api_key: str = Field("", alias="apiKey", description="Provider credential; used for this request only")


class CodeRequest(BaseModel):
    code: str


# Choose rate limiter based on environment
_REDIS_URL = os.getenv("REDIS_URL", "").strip()
_rl_instance: Optional[RedisRateLimiter] = None
if _REDIS_URL and not os.getenv("PYTEST_CURRENT_TEST"):
    _rl_instance = RedisRateLimiter(_REDIS_URL)


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "anon"


def _safe_rate_check(bucket: str, key: str) -> Tuple[bool, int, int]:
    """
    Return (allowed, remaining, reset_ts).
    Uses the Redis limiter when configured, the in-process one otherwise;
    if the shared store is unreachable the in-process window applies.
    """
    if _rl_instance is not None:
        try:
            return _rl_instance.check_and_increment(bucket, key)
        except Exception as exc:
            log.warning("rate_limit: redis unavailable, using in-process window err=%r", exc)
    return _rl_mod.check_and_increment(bucket, key)


def _rate_limit_headers(remaining: int, reset_ts: int, *, limited: bool = False) -> Dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(_rl_mod.MAX_REQUESTS),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_ts),
    }
    if limited:
        wait_seconds = max(0, reset_ts - int(time.time()))
        headers["Retry-After"] = str(wait_seconds)
    return headers


def _rate_limit_payload(reset_ts: int) -> Dict[str, Any]:
    wait_seconds = max(0, reset_ts - int(time.time()))
    return {
        "error": "rate limit exceeded",
        "reset": reset_ts,
        "retry_after_seconds": wait_seconds,
        "message": f"Rate limit exceeded. Try again in {wait_seconds} seconds.",
    }


@app.get("/", response_class=HTMLResponse)
def root() -> str:
    return render_host_page()


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return llm_client.status()


@app.post("/generate")
def generate_endpoint(req: GenerateRequest, request: Request):
    allowed, remaining, reset_ts = _safe_rate_check("gen", _client_key(request))
    log.info("rate_limit allowed=%s remaining=%s", allowed, remaining)
    if not allowed:
        return JSONResponse(
            status_code=429,
            content=_rate_limit_payload(reset_ts),
            headers=_rate_limit_headers(remaining, reset_ts, limited=True),
        )
    headers = _rate_limit_headers(remaining, reset_ts)

    try:
        result = agent.run_agent(req.user_intent, req.current_code, req.api_key)
    except GenerationError as exc:
        log.warning("generate.failed kind=%s error=%s", type(exc).__name__, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)}, headers=headers)
    except Exception:
        log.exception("generate.failed: unexpected error")
        return JSONResponse(status_code=500, content={"error": "Generation failed"}, headers=headers)

    return JSONResponse(content=result.to_wire(), headers=headers)


@app.post("/validate")
def validate_endpoint(req: CodeRequest):
    """
    Sanitize ``code`` and check it against the component library.
    Returns 200 and {"detail":{"valid":true,...}} on success,
            422 and {"detail":{"valid":false,"errors":[...],...}} on failure.
    """
    code = sanitize(req.code)
    errors = collect_errors(scan_component_tags(code))
    detail: Dict[str, Any] = {
        "valid": not errors,
        "code": code,
        "componentUsage": extract_component_usage(code),
    }
    if errors:
        detail["errors"] = errors
        return JSONResponse(status_code=422, content={"detail": detail})
    return {"detail": detail}


@app.post("/preview", response_class=HTMLResponse)
def preview_endpoint(req: CodeRequest) -> HTMLResponse:
    return HTMLResponse(render_preview_document(req.code))


@app.post("/preview/factory")
def preview_factory_endpoint(req: CodeRequest):
    try:
        factory = build_component_factory(sanitize(req.code))
    except CompileError as exc:
        return JSONResponse(status_code=422, content={"error": str(exc)})
    return factory.model_dump()


@app.post("/export")
def export_endpoint(req: CodeRequest) -> Response:
    return Response(
        content=req.code,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )
