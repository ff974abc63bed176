"""原子事务封装

每个函数对应一次完整的写操作：在同一 SQLite 事务内提交，
失败时回滚并抛出 PersistenceError，保证不留下部分写入。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite
import structlog

from ..exceptions import NotFoundError, PersistenceError
from ..models.enums import EventStatus
from ..models.event import Event
from ..models.sort import SortPreferences
from .protocols import EventStore, PreferencesStore

log = structlog.get_logger()


@asynccontextmanager
async def atomic(conn: aiosqlite.Connection, operation: str) -> AsyncIterator[None]:
    """事务上下文：正常退出时提交，存储异常时回滚并转换为 PersistenceError

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        operation: 操作名称，用于日志与错误信息
    """
    try:
        yield
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        await log.aerror(
            "transaction_rolled_back",
            operation=operation,
            error_type=type(e).__name__,
        )
        raise PersistenceError(operation, e) from e
    except Exception:
        await conn.rollback()
        raise


async def insert_event(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    event: Event,
) -> None:
    """单事务插入事件"""
    async with atomic(conn, "create_event"):
        await event_store.create_event(event)


async def replace_event(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    event: Event,
) -> None:
    """单事务整行更新事件"""
    async with atomic(conn, "update_event"):
        await event_store.update_event(event)


async def write_event_status(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    event_id: str,
    status: EventStatus,
    updated_at: datetime,
) -> None:
    """单事务写入状态

    Raises:
        NotFoundError: 记录已不存在（事务回滚）
        PersistenceError: 存储失败（事务回滚）
    """
    async with atomic(conn, "update_event_status"):
        affected = await event_store.update_event_status(event_id, status, updated_at)
        if affected == 0:
            raise NotFoundError(event_id)


async def delete_event_and_detach(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    event_id: str,
    detached: list[Event],
) -> None:
    """在同一事务内删除事件并改写所有依赖方的 dependencies

    Args:
        conn: 数据库连接
        event_store: EventStore 实例
        event_id: 要删除的事件 ID
        detached: 已移除 event_id 的依赖方新版本
    """
    async with atomic(conn, "delete_event"):
        affected = await event_store.delete_event(event_id)
        if affected == 0:
            raise NotFoundError(event_id)
        for dependent in detached:
            await event_store.update_event(dependent)


async def save_sort_preferences(
    conn: aiosqlite.Connection,
    preferences_store: PreferencesStore,
    preferences: SortPreferences,
) -> None:
    """单事务写入排序偏好"""
    async with atomic(conn, "save_sort_preferences"):
        await preferences_store.save_sort_preferences(preferences)
