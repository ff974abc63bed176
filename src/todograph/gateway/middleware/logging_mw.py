"""LoggingMiddleware -- 请求级日志

每个请求绑定 request_id（沿用客户端传入的 X-Request-ID，否则生成 ULID），
事件路由额外绑定 event_id，同一事件的请求日志与仓库日志可以互相关联。
请求结果按状态码分级记录：5xx 为 error，4xx 为 warning。
健康检查只在 DEBUG 级别记录，避免探活请求淹没日志。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

from .trace_mw import extract_event_id

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_MAX_LENGTH = 64
_QUIET_PATHS = frozenset({"/health", "/ready"})

log = structlog.get_logger()


def resolve_request_id(incoming: str | None) -> str:
    """沿用合法的上游 request_id，否则生成新的 ULID"""
    if incoming:
        incoming = incoming.strip()
        if 0 < len(incoming) <= _REQUEST_ID_MAX_LENGTH and incoming.isprintable():
            return incoming
    return str(ULID())


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
        )
        event_id = extract_event_id(path)
        if event_id:
            structlog.contextvars.bind_contextvars(event_id=event_id)

        quiet = path in _QUIET_PATHS
        if not quiet:
            await log.ainfo("request_started")
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            await log.aexception(
                "request_failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        status_code = response.status_code
        if status_code >= 500:
            emit = log.aerror
        elif status_code >= 400:
            emit = log.awarning
        elif quiet:
            emit = log.adebug
        else:
            emit = log.ainfo
        await emit("request_completed", status_code=status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
