# app/main.py
import logging
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import book as book_router
from .core.config import get_settings
from .core.errors import AppError, ValidationError
from .core.logging import HTTP_LOGGER_NAME, setup_logging
from .core.messages import DATABASE_MESSAGES, GENERAL_MESSAGES
from .core.rate_limit import limiter
from .database import engine
from .schemas.book import FIELD_ERROR_MESSAGES, PATH_ERROR_MESSAGES, QUERY_ERROR_MESSAGES, REQUIRED_MESSAGES
from .schemas.common import ErrorResponse, HealthResponse
from .services.dispatch import NotificationDispatcher, get_dispatcher

settings = get_settings()
logger = setup_logging(settings)
http_logger = logging.getLogger(HTTP_LOGGER_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log level: {settings.effective_log_level}")
    yield
    logger.info("Shutdown: closing notification queue connections")
    if get_dispatcher.cache_info().currsize:
        get_dispatcher().close()
    logger.info("Server closed gracefully")


app = FastAPI(title="Library Catalog API", version="1.0.0", lifespan=lifespan)
app.state.limiter = limiter

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Accept", "Origin"],
)

app.include_router(book_router.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    client = request.client.host if request.client else None
    http_logger.debug(
        f"{request.method} {request.url.path}",
        extra={"ip": client, "userAgent": request.headers.get("user-agent"), "query": str(request.query_params) or None},
    )
    try:
        response = await call_next(request)
    except Exception:
        # 처리되지 않은 예외도 응답 로그(500)는 남김
        duration_ms = round((time.perf_counter() - start) * 1000, 1)
        http_logger.error(
            f"{request.method} {request.url.path} 500",
            extra={"statusCode": 500, "duration": f"{duration_ms}ms", "ip": client},
        )
        raise
    duration_ms = round((time.perf_counter() - start) * 1000, 1)
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    http_logger.log(
        level,
        f"{request.method} {request.url.path} {response.status_code}",
        extra={"statusCode": response.status_code, "duration": f"{duration_ms}ms", "ip": client},
    )
    return response


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


@app.get("/health", response_model=HealthResponse, tags=["meta"])
def health():
    return HealthResponse(
        message=GENERAL_MESSAGES["SERVER_RUNNING"],
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/health/db", tags=["meta"])
def health_db():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "database": "reachable"}
    except Exception as e:
        return {"status": "error", "database": "unreachable", "detail": str(e)}


@app.get("/health/queue", tags=["meta"])
def health_queue(dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    try:
        dispatcher.ping()
        return {"status": "ok", "queue": "reachable"}
    except Exception as e:
        return {"status": "error", "queue": "unreachable", "detail": str(e)}


# =========================
# Global error handlers
# =========================


def _error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    # 최상위의 빈 필드(errors, stack)만 생략. errors[].value 의 null 은 유지
    content = {k: v for k, v in body.model_dump().items() if v is not None}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def _log_error(request: Request, status_code: int, message: str, **fields) -> None:
    extra = {"status": status_code, "method": request.method, "url": str(request.url.path), **fields}
    if status_code >= 500:
        logger.error("Server error: %s", message, extra=extra)
    else:
        logger.warning("Client error: %s", message, extra=extra)


def _field_errors(exc: RequestValidationError) -> list:
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        source = loc[0] if loc else ""
        field = loc[-1] if len(loc) > 1 else source
        err_type = err.get("type", "")
        value = err.get("input")
        ctx_error = (err.get("ctx") or {}).get("error")
        if err_type == "missing":
            message = REQUIRED_MESSAGES.get(field, err.get("msg"))
            value = None
        elif err_type == "value_error" and ctx_error is not None:
            # field_validator에서 올린 메시지 그대로 사용
            message = str(ctx_error)
        else:
            messages = {"query": QUERY_ERROR_MESSAGES, "path": PATH_ERROR_MESSAGES}.get(source, FIELD_ERROR_MESSAGES)
            message = messages.get(field, err.get("msg"))
        out.append({"field": field, "message": message, "value": value})
    return out


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = _field_errors(exc)
    _log_error(request, 400, GENERAL_MESSAGES["VALIDATION_FAILED"], errors=errors)
    return _error_response(400, ErrorResponse(message=GENERAL_MESSAGES["VALIDATION_FAILED"], errors=errors))


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    errors = exc.errors if isinstance(exc, ValidationError) else None
    _log_error(request, exc.status_code, exc.message)
    return _error_response(exc.status_code, ErrorResponse(message=exc.message, errors=errors))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    _log_error(request, 429, GENERAL_MESSAGES["TOO_MANY_REQUESTS"], limit=str(exc.detail))
    return _error_response(429, ErrorResponse(message=GENERAL_MESSAGES["TOO_MANY_REQUESTS"]))


# 서비스 사전검사를 우회한 동시성 경쟁(중복 ISBN 등)은 DB 제약 오류로 들어옴
@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    _log_error(request, 409, str(exc.orig))
    return _error_response(409, ErrorResponse(message=DATABASE_MESSAGES["DUPLICATE_CONSTRAINT"]))


@app.exception_handler(NoResultFound)
async def no_result_handler(request: Request, exc: NoResultFound):
    _log_error(request, 404, str(exc))
    return _error_response(404, ErrorResponse(message=DATABASE_MESSAGES["RECORD_NOT_FOUND"]))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        message = GENERAL_MESSAGES["ROUTE_NOT_FOUND"]
    else:
        message = str(exc.detail)
    _log_error(request, exc.status_code, message)
    return _error_response(exc.status_code, ErrorResponse(message=message))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        "Server error: %s",
        exc,
        extra={"status": 500, "method": request.method, "url": str(request.url.path)},
        exc_info=exc,
    )
    return _error_response(
        500,
        ErrorResponse(
            message=GENERAL_MESSAGES["INTERNAL_SERVER_ERROR"],
            stack=None if settings.is_production else stack,
        ),
    )
