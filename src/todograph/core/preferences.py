"""SortPreferencesService -- 排序偏好单例管理

首次读取时创建默认偏好（未启用、无规则），之后原地修改。
偏好与事件共用一个数据库连接，写入持有 StoreGroup 的写锁，
不会与仓库的事务交错。
规则的 order 在增删与重排后始终保持为 0..n-1 的连续序号。
"""

import aiosqlite
import structlog

from .exceptions import NotFoundError, PersistenceError, ValidationError
from .models import SortDirection, SortPreferences, TagSortRule
from .store import StoreGroup, save_sort_preferences

log = structlog.get_logger()


class SortPreferencesService:
    """排序偏好服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group
        self._lock = store_group.lock

    async def get(self) -> SortPreferences:
        """读取排序偏好；不存在时创建默认值并落盘"""
        async with self._lock.read():
            preferences = await self._fetch()
        if preferences is not None:
            return preferences
        async with self._lock.write():
            return await self._load()

    async def set_enabled(self, enabled: bool) -> SortPreferences:
        """启用/停用标签排序"""
        async with self._lock.write():
            preferences = await self._load()
            preferences.enabled = enabled
            await self._save(preferences)
        await log.ainfo("sort_preferences_toggled", enabled=enabled)
        return preferences

    async def upsert_rule(
        self,
        tag_key: str,
        direction: SortDirection = SortDirection.ASC,
        order: int | None = None,
    ) -> SortPreferences:
        """新增规则或更新已有规则的方向/优先级

        order 为 None 时：新规则追加到末尾，已有规则保持原优先级。
        """
        tag_key = tag_key.strip()
        if not tag_key:
            raise ValidationError("tag key must not be empty", field="tag_key")

        async with self._lock.write():
            preferences = await self._load()
            rules = list(preferences.tag_sort_rules)
            existing = preferences.find_rule(tag_key)
            if existing is not None:
                rules.remove(existing)
                position = existing.order if order is None else order
            else:
                position = len(rules) if order is None else order
            position = max(0, min(position, len(rules)))
            rules.insert(position, TagSortRule(tag_key=tag_key, direction=direction))
            preferences.tag_sort_rules = self._renumber(rules)
            await self._save(preferences)

        await log.ainfo(
            "sort_rule_upserted",
            tag_key=tag_key,
            direction=direction.value,
            order=position,
        )
        return preferences

    async def remove_rule(self, tag_key: str) -> SortPreferences:
        """删除规则并重排剩余规则的 order

        Raises:
            NotFoundError: 规则不存在
        """
        async with self._lock.write():
            preferences = await self._load()
            rule = preferences.find_rule(tag_key)
            if rule is None:
                raise NotFoundError(tag_key, entity="sort rule")
            rules = [r for r in preferences.tag_sort_rules if r.tag_key != tag_key]
            preferences.tag_sort_rules = self._renumber(rules)
            await self._save(preferences)
        await log.ainfo("sort_rule_removed", tag_key=tag_key)
        return preferences

    async def reorder_rules(self, tag_keys: list[str]) -> SortPreferences:
        """按给定 key 顺序重排全部规则

        Raises:
            ValidationError: tag_keys 不是现有规则 key 的一个排列
        """
        async with self._lock.write():
            preferences = await self._load()
            by_key = {rule.tag_key: rule for rule in preferences.tag_sort_rules}
            if len(tag_keys) != len(by_key) or set(tag_keys) != set(by_key):
                raise ValidationError(
                    "tag_keys must be a permutation of the existing rule keys",
                    field="tag_keys",
                )
            preferences.tag_sort_rules = self._renumber([by_key[k] for k in tag_keys])
            await self._save(preferences)
        await log.ainfo("sort_rules_reordered", tag_keys=tag_keys)
        return preferences

    async def replace(self, preferences: SortPreferences) -> SortPreferences:
        """整体覆盖排序偏好（order 按现有相对顺序重新编号）"""
        keys = [rule.tag_key for rule in preferences.tag_sort_rules]
        if len(keys) != len(set(keys)):
            raise ValidationError("duplicate tag keys in sort rules", field="tagSortRules")
        ordered = sorted(preferences.tag_sort_rules, key=lambda rule: rule.order)
        result = SortPreferences(
            enabled=preferences.enabled,
            tag_sort_rules=self._renumber(ordered),
        )
        async with self._lock.write():
            await self._save(result)
        await log.ainfo("sort_preferences_replaced", rule_count=len(keys))
        return result

    async def _fetch(self) -> SortPreferences | None:
        try:
            return await self._stores.preferences_store.get_sort_preferences()
        except aiosqlite.Error as e:
            raise PersistenceError("get_sort_preferences", e) from e

    async def _load(self) -> SortPreferences:
        # 写锁内再读一次：等锁期间其他写者可能已经创建了默认值
        preferences = await self._fetch()
        if preferences is None:
            preferences = SortPreferences()
            await self._save(preferences)
            await log.ainfo("sort_preferences_initialized")
        return preferences

    async def _save(self, preferences: SortPreferences) -> None:
        await save_sort_preferences(
            self._stores.conn,
            self._stores.preferences_store,
            preferences,
        )

    @staticmethod
    def _renumber(rules: list[TagSortRule]) -> list[TagSortRule]:
        return [
            rule.model_copy(update={"order": idx}) for idx, rule in enumerate(rules)
        ]
