"""TraceMiddleware -- 事件级追踪

对 /api/events/{event_id} 及其子路由绑定 trace_id，
同一事件的读写、状态流转日志可以按 trace_id 串联。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ULID 字符串长度
_EVENT_ID_LENGTH = 26


def extract_event_id(path: str) -> str | None:
    """从 /api/events/{event_id}[/...] 路径中提取 event_id"""
    parts = path.strip("/").split("/")
    if len(parts) >= 3 and parts[0] == "api" and parts[1] == "events":
        event_id = parts[2]
        if len(event_id) == _EVENT_ID_LENGTH:
            return event_id
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """事件级追踪中间件 -- 为单个事件的操作绑定 trace_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        event_id = extract_event_id(request.url.path)
        if event_id:
            structlog.contextvars.bind_contextvars(trace_id=f"trace-{event_id}")

        return await call_next(request)
