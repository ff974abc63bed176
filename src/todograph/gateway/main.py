"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 依赖图加载 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from todograph.core.config import get_db_path
from todograph.core.database import DatabaseManager
from todograph.core.preferences import SortPreferencesService
from todograph.core.repository import EventRepository
from todograph.core.status_engine import StatusEngine
from todograph.core.store import StoreGroup, create_store_group

from .errors import register_error_handlers
from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import database, events, health, preferences

log = structlog.get_logger()


async def init_services(app: FastAPI, store_group: StoreGroup) -> None:
    """在 app.state 上装配核心服务，并从持久化记录重建依赖图"""
    repository = EventRepository(store_group)
    event_count = await repository.load()

    app.state.store_group = store_group
    app.state.repository = repository
    app.state.status_engine = StatusEngine(repository)
    app.state.preferences = SortPreferencesService(store_group)
    app.state.database = DatabaseManager(store_group, repository)

    await log.ainfo(
        "services_initialized",
        db_path=store_group.db_path,
        event_count=event_count,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 和核心服务，关闭时清理连接"""
    store_group = await create_store_group(get_db_path())
    try:
        await init_services(app, store_group)
    except Exception:
        await store_group.close()
        raise

    yield

    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="todograph Gateway",
        version="0.1.0",
        description="依赖感知的事件/任务管理 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    register_error_handlers(app)

    app.include_router(events.router, tags=["events"])
    app.include_router(preferences.router, tags=["preferences"])
    app.include_router(database.router, tags=["database"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
