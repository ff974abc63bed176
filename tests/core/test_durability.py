"""进程重启持久性测试

测试内容：
1. 创建事件/偏好 → 关闭 DB 连接 → 重新打开 → 数据与依赖图完整
2. WAL 模式验证
"""

from pathlib import Path

from todograph.core.models import CreateEventRequest, EventStatus, SortDirection
from todograph.core.preferences import SortPreferencesService
from todograph.core.repository import EventRepository
from todograph.core.status_engine import StatusEngine
from todograph.core.store import create_store_group
from todograph.core.store.sqlite_init import verify_wal_mode


class TestDurability:
    """进程重启后事件不丢失"""

    async def test_data_survives_restart(self, tmp_path: Path):
        """创建事件 → 关闭 → 重新打开 → 记录、状态与依赖关系完整"""
        db_path = tmp_path / "durability.db"

        group1 = await create_store_group(db_path)
        repo1 = EventRepository(group1)
        await repo1.load()
        a = await repo1.create(CreateEventRequest(name="A", tags={"area": "home"}))
        b = await repo1.create(CreateEventRequest(name="B", dependencies=[a.id]))
        await StatusEngine(repo1).set_status(a.id, EventStatus.COMPLETED)
        await SortPreferencesService(group1).upsert_rule("area", SortDirection.DESC)
        await group1.close()

        group2 = await create_store_group(db_path)
        try:
            repo2 = EventRepository(group2)
            assert await repo2.load() == 2

            stored_a = await repo2.get(a.id)
            stored_b = await repo2.get(b.id)
            assert stored_a.status == EventStatus.COMPLETED
            assert stored_a.tags == {"area": "home"}
            assert stored_b.status == EventStatus.PENDING
            assert stored_b.dependencies == [a.id]
            assert repo2.graph.dependents(a.id) == [b.id]

            prefs = await SortPreferencesService(group2).get()
            assert [r.tag_key for r in prefs.tag_sort_rules] == ["area"]
            assert prefs.tag_sort_rules[0].direction == SortDirection.DESC
        finally:
            await group2.close()

    async def test_wal_mode_enabled(self, store_group):
        """数据库以 WAL 模式打开"""
        assert await verify_wal_mode(store_group.conn)

    async def test_event_count(self, repository, store_group):
        await repository.create(CreateEventRequest(name="A"))
        assert await store_group.event_store.count_events() == 1
