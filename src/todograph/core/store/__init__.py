"""todograph Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
同一连接上的所有写事务都必须在 StoreGroup.lock 的写锁内执行：
aiosqlite 连接上的 commit/rollback 作用于整个连接，
两个交错的事务会互相提交或回滚对方的语句。
"""

from pathlib import Path

import aiosqlite

from ..locking import ReadWriteLock
from .event_store import SqliteEventStore
from .preferences_store import SqlitePreferencesStore
from .protocols import EventStore, PreferencesStore
from .sqlite_init import init_db
from .transaction import (
    atomic,
    delete_event_and_detach,
    insert_event,
    replace_event,
    save_sort_preferences,
    write_event_status,
)


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接与同一把读写锁"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        db_path: str | Path | None = None,
    ) -> None:
        self.lock = ReadWriteLock()
        self.bind(conn, db_path)

    def bind(self, conn: aiosqlite.Connection, db_path: str | Path | None) -> None:
        """把实例组切换到另一个连接（调用方必须持有写锁）

        仓库与偏好服务都通过同一个 StoreGroup 访问存储，
        原地切换后它们立即使用新连接。旧连接由调用方负责关闭。
        """
        self.conn = conn
        self.db_path = str(db_path) if db_path is not None else None
        self.event_store = SqliteEventStore(conn)
        self.preferences_store = SqlitePreferencesStore(conn)

    async def close(self) -> None:
        """关闭数据库连接"""
        await self.conn.close()


async def open_database(db_path: str | Path) -> aiosqlite.Connection:
    """打开（必要时创建）数据库文件并初始化 schema"""
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(str(db_path))
    conn.row_factory = aiosqlite.Row
    try:
        await init_db(conn)
    except aiosqlite.Error:
        await conn.close()
        raise
    return conn


async def create_store_group(db_path: str | Path) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    conn = await open_database(db_path)
    return StoreGroup(conn=conn, db_path=db_path)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "open_database",
    "SqliteEventStore",
    "SqlitePreferencesStore",
    "init_db",
    "EventStore",
    "PreferencesStore",
    "atomic",
    "insert_event",
    "replace_event",
    "write_event_status",
    "delete_event_and_detach",
    "save_sort_preferences",
]
