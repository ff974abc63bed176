"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性与事件数量。
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. event_count: 已持久化的事件数量
    3. graph_nodes: 内存依赖图中的节点数量
    """
    checks = {}
    all_ok = True

    store_group = request.app.state.store_group
    # 读锁：切换数据库期间不会读到正在关闭的连接
    async with store_group.lock.read():
        # 1. SQLite 连通性检查
        try:
            cursor = await store_group.conn.execute("SELECT 1")
            await cursor.fetchone()
            checks["sqlite"] = "ok"
        except Exception as e:
            await log.awarning("ready_check_failed", check="sqlite", error=str(e))
            checks["sqlite"] = f"error: {str(e)}"
            all_ok = False

        # 2. 事件数量
        if all_ok:
            try:
                checks["event_count"] = await store_group.event_store.count_events()
            except Exception as e:
                await log.awarning(
                    "ready_check_failed", check="event_count", error=str(e)
                )
                checks["event_count"] = f"error: {str(e)}"
                all_ok = False
    checks["database_path"] = store_group.db_path

    # 3. 依赖图
    repository = getattr(request.app.state, "repository", None)
    checks["graph_nodes"] = len(repository.graph) if repository is not None else 0

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )
