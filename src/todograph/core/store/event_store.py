"""EventStore SQLite 实现

注意：所有写方法都不自动提交事务，事务边界由 transaction 模块管理。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import EventStatus
from ..models.event import Event

_COLUMNS = "id, name, description, tags, status, created_at, updated_at, dependencies"


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_event(self, event: Event) -> None:
        """插入事件记录"""
        await self._conn.execute(
            f"""
            INSERT INTO events ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.id,
                event.name,
                event.description,
                json.dumps(event.tags, ensure_ascii=False),
                event.status.value,
                event.created_at.isoformat(),
                event.updated_at.isoformat(),
                json.dumps(event.dependencies),
            ),
        )

    async def get_event(self, event_id: str) -> Event | None:
        """根据 id 查询事件"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM events WHERE id = ?",
            (event_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    async def list_events(self, status: EventStatus | None = None) -> list[Event]:
        """查询事件列表，支持按状态筛选，按 created_at 倒序"""
        if status:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM events WHERE status = ? "
                "ORDER BY created_at DESC, id DESC",
                (status.value,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM events ORDER BY created_at DESC, id DESC"
            )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def update_event(self, event: Event) -> None:
        """整行更新事件（id 与 created_at 不变）"""
        await self._conn.execute(
            """
            UPDATE events
            SET name = ?, description = ?, tags = ?, status = ?,
                updated_at = ?, dependencies = ?
            WHERE id = ?
            """,
            (
                event.name,
                event.description,
                json.dumps(event.tags, ensure_ascii=False),
                event.status.value,
                event.updated_at.isoformat(),
                json.dumps(event.dependencies),
                event.id,
            ),
        )

    async def update_event_status(
        self,
        event_id: str,
        status: EventStatus,
        updated_at: datetime,
    ) -> int:
        """仅更新状态与 updated_at

        Returns:
            受影响行数
        """
        cursor = await self._conn.execute(
            "UPDATE events SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, updated_at.isoformat(), event_id),
        )
        return cursor.rowcount

    async def delete_event(self, event_id: str) -> int:
        """删除事件

        Returns:
            受影响行数
        """
        cursor = await self._conn.execute(
            "DELETE FROM events WHERE id = ?",
            (event_id,),
        )
        return cursor.rowcount

    async def count_events(self) -> int:
        """事件总数"""
        cursor = await self._conn.execute("SELECT COUNT(*) FROM events")
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        """将数据库行转换为 Event 模型"""
        tags = json.loads(row[3]) if row[3] else {}
        dependencies = json.loads(row[7]) if row[7] else []
        return Event(
            id=row[0],
            name=row[1],
            description=row[2],
            tags=tags,
            status=EventStatus(row[4]),
            created_at=datetime.fromisoformat(row[5]),
            updated_at=datetime.fromisoformat(row[6]),
            dependencies=dependencies,
        )
