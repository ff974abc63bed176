"""错误响应映射

core 异常统一转换为 {"error": {"code", "message"}} 响应体：
- ValidationError / 请求体校验失败 -> 400 VALIDATION_ERROR
- NotFoundError -> 404 EVENT_NOT_FOUND / RULE_NOT_FOUND
- CyclicDependencyError -> 409 CYCLIC_DEPENDENCY（附带 cycle）
- PersistenceError -> 503 PERSISTENCE_ERROR
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse
from todograph.core.exceptions import (
    CyclicDependencyError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

log = structlog.get_logger()


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    """构造统一格式的错误响应"""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, **extra}},
    )


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    extra = {"field": exc.field} if exc.field else {}
    return error_response(400, "VALIDATION_ERROR", exc.message, **extra)


async def _request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    return error_response(400, "VALIDATION_ERROR", message)


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    code = "EVENT_NOT_FOUND" if exc.entity == "event" else "RULE_NOT_FOUND"
    return error_response(404, code, exc.message)


async def _cyclic_dependency(
    request: Request, exc: CyclicDependencyError
) -> JSONResponse:
    return error_response(409, "CYCLIC_DEPENDENCY", exc.message, cycle=exc.cycle)


async def _persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
    await log.aerror(
        "persistence_error",
        operation=exc.operation,
        error_type=type(exc.original_error).__name__,
    )
    return error_response(503, "PERSISTENCE_ERROR", exc.message)


def register_error_handlers(app: FastAPI) -> None:
    """注册 core 异常到 HTTP 响应的映射"""
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(CyclicDependencyError, _cyclic_dependency)
    app.add_exception_handler(PersistenceError, _persistence_error)
