"""Domain Model 单元测试

测试内容：
1. Event 依赖去重与默认值
2. 排序偏好的别名序列化与唯一性约束
3. EventFilter 筛选语义
4. derive_status 状态推导规则
5. StatusChangeResult 汇总属性
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError
from todograph.core.models import (
    RECOMPUTABLE_STATES,
    CascadeFailure,
    Event,
    EventFilter,
    EventStatus,
    SortDirection,
    SortPreferences,
    StatusChangeResult,
    TagSortRule,
    derive_status,
)


def _event(**overrides) -> Event:
    now = datetime.now(UTC)
    data = {
        "id": "01JEVENT000000000000000001",
        "name": "写周报",
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return Event(**data)


class TestEventModel:
    """Event 模型"""

    def test_defaults(self):
        """默认状态为 Pending，描述为空，无标签无依赖"""
        event = _event()
        assert event.status == EventStatus.PENDING
        assert event.description == ""
        assert event.tags == {}
        assert event.dependencies == []

    def test_dependencies_deduplicated_in_order(self):
        """依赖按集合语义去重，保留首次出现顺序"""
        event = _event(dependencies=["b", "a", "b", "c", "a"])
        assert event.dependencies == ["b", "a", "c"]

    def test_status_serializes_as_string(self):
        """状态序列化为原始字符串值"""
        event = _event(status=EventStatus.IN_PROGRESS)
        data = event.model_dump(mode="json")
        assert data["status"] == "InProgress"

    def test_status_string_values(self):
        """状态字符串与记录格式一致"""
        assert [s.value for s in EventStatus] == [
            "Pending",
            "InProgress",
            "Completed",
            "Blocked",
        ]


class TestSortPreferencesModel:
    """排序偏好模型"""

    def test_alias_round_trip(self):
        """tagKey / tagSortRules 别名可读可写"""
        prefs = SortPreferences.model_validate(
            {
                "enabled": True,
                "tagSortRules": [{"tagKey": "priority", "direction": "desc", "order": 0}],
            }
        )
        assert prefs.tag_sort_rules[0].tag_key == "priority"
        assert prefs.tag_sort_rules[0].direction == SortDirection.DESC
        dumped = prefs.model_dump(by_alias=True, mode="json")
        assert dumped["tagSortRules"][0]["tagKey"] == "priority"

    def test_populate_by_field_name(self):
        """字段名构造同样可用"""
        rule = TagSortRule(tag_key="area")
        assert rule.direction == SortDirection.ASC
        assert rule.order == 0

    def test_rules_sorted_by_order(self):
        """规则按 order 升序保存"""
        prefs = SortPreferences(
            tag_sort_rules=[
                TagSortRule(tag_key="b", order=1),
                TagSortRule(tag_key="a", order=0),
            ]
        )
        assert [r.tag_key for r in prefs.tag_sort_rules] == ["a", "b"]

    def test_duplicate_tag_keys_rejected(self):
        """同一 tag_key 不允许出现两次"""
        with pytest.raises(PydanticValidationError):
            SortPreferences(
                tag_sort_rules=[
                    TagSortRule(tag_key="a", order=0),
                    TagSortRule(tag_key="a", order=1),
                ]
            )

    def test_empty_tag_key_rejected(self):
        """空 tag_key 不合法"""
        with pytest.raises(PydanticValidationError):
            TagSortRule(tag_key="")

    def test_active_rules_empty_when_disabled(self):
        """未启用时没有生效规则"""
        prefs = SortPreferences(
            enabled=False,
            tag_sort_rules=[TagSortRule(tag_key="a")],
        )
        assert prefs.active_rules() == []
        prefs.enabled = True
        assert [r.tag_key for r in prefs.active_rules()] == ["a"]

    def test_find_rule(self):
        prefs = SortPreferences(tag_sort_rules=[TagSortRule(tag_key="a")])
        assert prefs.find_rule("a") is not None
        assert prefs.find_rule("missing") is None


class TestEventFilter:
    """EventFilter 筛选语义"""

    def test_empty_filter_matches_everything(self):
        assert EventFilter().matches(_event())

    def test_status_exact_match(self):
        f = EventFilter(status=EventStatus.BLOCKED)
        assert f.matches(_event(status=EventStatus.BLOCKED))
        assert not f.matches(_event(status=EventStatus.PENDING))

    def test_all_tag_pairs_must_match(self):
        """每个标签键值对都必须精确匹配"""
        event = _event(tags={"area": "home", "priority": "1"})
        assert EventFilter(tags={"area": "home"}).matches(event)
        assert EventFilter(tags={"area": "home", "priority": "1"}).matches(event)
        assert not EventFilter(tags={"area": "home", "priority": "2"}).matches(event)
        assert not EventFilter(tags={"owner": "me"}).matches(event)

    def test_search_name_or_description(self):
        """搜索对名称和描述做大小写不敏感子串匹配"""
        event = _event(name="Buy Milk", description="from the corner shop")
        assert EventFilter(search="milk").matches(event)
        assert EventFilter(search="CORNER").matches(event)
        assert not EventFilter(search="bread").matches(event)


class TestDeriveStatus:
    """状态推导规则"""

    def test_no_dependencies_is_pending(self):
        assert derive_status([]) == EventStatus.PENDING

    def test_all_completed_is_pending(self):
        statuses = [EventStatus.COMPLETED, EventStatus.COMPLETED]
        assert derive_status(statuses) == EventStatus.PENDING

    @pytest.mark.parametrize(
        "status",
        [EventStatus.PENDING, EventStatus.IN_PROGRESS, EventStatus.BLOCKED],
    )
    def test_any_incomplete_is_blocked(self, status: EventStatus):
        assert derive_status([EventStatus.COMPLETED, status]) == EventStatus.BLOCKED

    def test_recomputable_states(self):
        """只有 Pending/Blocked 会在依赖变更时被重算"""
        assert RECOMPUTABLE_STATES == {EventStatus.PENDING, EventStatus.BLOCKED}


class TestStatusChangeResult:
    """StatusChangeResult 汇总属性"""

    def test_updated_lists_target_first(self):
        target = _event(id="A", status=EventStatus.COMPLETED)
        dependent = _event(id="B")
        result = StatusChangeResult(target=target, unblocked=[dependent])
        assert [e.id for e in result.updated] == ["A", "B"]
        assert not result.partial

    def test_partial_when_failures(self):
        result = StatusChangeResult(
            target=_event(id="A"),
            failures=[
                CascadeFailure(event_id="B", error_type="PersistenceError", message="x")
            ],
        )
        assert result.partial
