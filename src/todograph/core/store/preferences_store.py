"""PreferencesStore SQLite 实现 -- 排序偏好单例行"""

import json
from datetime import UTC, datetime

import aiosqlite

from ..models.sort import SortPreferences, TagSortRule


class SqlitePreferencesStore:
    """排序偏好的 SQLite 实现（id 固定为 1 的单例行）"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_sort_preferences(self) -> SortPreferences | None:
        """读取排序偏好，不存在时返回 None"""
        cursor = await self._conn.execute(
            "SELECT enabled, rules FROM sort_preferences WHERE id = 1"
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        rules = [TagSortRule(**item) for item in json.loads(row[1] or "[]")]
        return SortPreferences(enabled=bool(row[0]), tag_sort_rules=rules)

    async def save_sort_preferences(self, preferences: SortPreferences) -> None:
        """写入排序偏好（upsert，不自动提交）"""
        rules = [
            rule.model_dump(mode="json", by_alias=True)
            for rule in preferences.tag_sort_rules
        ]
        await self._conn.execute(
            """
            INSERT INTO sort_preferences (id, enabled, rules, updated_at)
            VALUES (1, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                enabled = excluded.enabled,
                rules = excluded.rules,
                updated_at = excluded.updated_at
            """,
            (
                int(preferences.enabled),
                json.dumps(rules, ensure_ascii=False),
                datetime.now(UTC).isoformat(),
            ),
        )
