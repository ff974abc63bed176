"""SortPreferencesService 单元测试

测试内容：
1. 首次读取创建默认偏好并落盘
2. 规则新增/更新/删除后 order 保持连续
3. 重排必须是现有 key 的排列
4. 整体覆盖与持久化
"""

import pytest
from todograph.core.exceptions import NotFoundError, ValidationError
from todograph.core.models import SortDirection, SortPreferences, TagSortRule
from todograph.core.preferences import SortPreferencesService


def _keys(prefs: SortPreferences) -> list[str]:
    return [r.tag_key for r in prefs.tag_sort_rules]


def _orders(prefs: SortPreferences) -> list[int]:
    return [r.order for r in prefs.tag_sort_rules]


class TestDefaults:
    async def test_first_read_creates_defaults(self, preferences, store_group):
        prefs = await preferences.get()
        assert prefs.enabled is False
        assert prefs.tag_sort_rules == []
        stored = await store_group.preferences_store.get_sort_preferences()
        assert stored == prefs

    async def test_set_enabled_persists(self, preferences, store_group):
        await preferences.set_enabled(True)
        fresh = SortPreferencesService(store_group)
        assert (await fresh.get()).enabled is True


class TestRules:
    """规则管理"""

    async def test_new_rules_appended(self, preferences):
        await preferences.upsert_rule("priority", SortDirection.DESC)
        prefs = await preferences.upsert_rule("area")
        assert _keys(prefs) == ["priority", "area"]
        assert _orders(prefs) == [0, 1]
        assert prefs.tag_sort_rules[0].direction == SortDirection.DESC

    async def test_update_direction_keeps_position(self, preferences):
        await preferences.upsert_rule("a")
        await preferences.upsert_rule("b")
        prefs = await preferences.upsert_rule("a", SortDirection.DESC)
        assert _keys(prefs) == ["a", "b"]
        assert prefs.find_rule("a").direction == SortDirection.DESC

    async def test_upsert_with_explicit_order(self, preferences):
        await preferences.upsert_rule("a")
        await preferences.upsert_rule("b")
        prefs = await preferences.upsert_rule("c", order=0)
        assert _keys(prefs) == ["c", "a", "b"]
        assert _orders(prefs) == [0, 1, 2]

    async def test_empty_tag_key_rejected(self, preferences):
        with pytest.raises(ValidationError):
            await preferences.upsert_rule("   ")

    async def test_remove_renumbers(self, preferences):
        for key in ["a", "b", "c"]:
            await preferences.upsert_rule(key)
        prefs = await preferences.remove_rule("b")
        assert _keys(prefs) == ["a", "c"]
        assert _orders(prefs) == [0, 1]

    async def test_remove_unknown_raises(self, preferences):
        with pytest.raises(NotFoundError) as exc_info:
            await preferences.remove_rule("missing")
        assert exc_info.value.entity == "sort rule"

    async def test_reorder(self, preferences):
        for key in ["a", "b", "c"]:
            await preferences.upsert_rule(key)
        prefs = await preferences.reorder_rules(["c", "a", "b"])
        assert _keys(prefs) == ["c", "a", "b"]
        assert _orders(prefs) == [0, 1, 2]
        assert _keys(await preferences.get()) == ["c", "a", "b"]

    @pytest.mark.parametrize("keys", [["a"], ["a", "b", "x"], ["a", "a"]])
    async def test_reorder_requires_permutation(self, preferences, keys):
        await preferences.upsert_rule("a")
        await preferences.upsert_rule("b")
        with pytest.raises(ValidationError):
            await preferences.reorder_rules(keys)
        assert _keys(await preferences.get()) == ["a", "b"]


class TestReplace:
    async def test_replace_renumbers_by_relative_order(self, preferences):
        prefs = await preferences.replace(
            SortPreferences(
                enabled=True,
                tag_sort_rules=[
                    TagSortRule(tag_key="x", order=10),
                    TagSortRule(tag_key="y", order=3),
                ],
            )
        )
        assert _keys(prefs) == ["y", "x"]
        assert _orders(prefs) == [0, 1]
        assert await preferences.get() == prefs
