"""标签排序引擎

两个操作共享同一个比较原语：按标签值做大小写敏感的字典序比较，
并按规则方向翻转结果。

- order_tag_keys_for_display: 只决定单个事件标签徽章的展示顺序
- order_events: 决定事件列表顺序（稳定排序）
"""

from collections.abc import Iterable, Mapping, Sequence
from functools import cmp_to_key

from .models.enums import SortDirection
from .models.event import Event
from .models.sort import SortPreferences, TagSortRule


def compare_values(left: str, right: str, direction: SortDirection) -> int:
    """按码点字典序比较两个标签值，desc 时翻转"""
    result = (left > right) - (left < right)
    return -result if direction == SortDirection.DESC else result


def _rules_by_priority(rules: Iterable[TagSortRule]) -> list[TagSortRule]:
    return sorted(rules, key=lambda rule: rule.order)


def order_tag_keys_for_display(
    tags: Mapping[str, str],
    rules: Sequence[TagSortRule],
) -> list[tuple[str, str]]:
    """标签展示顺序

    命中规则的 key 按规则 order 排在前面，其余 key 按字母升序追加。

    Args:
        tags: 事件标签
        rules: 生效中的排序规则（未启用时传空列表）

    Returns:
        (key, value) 列表
    """
    ranked = {rule.tag_key: idx for idx, rule in enumerate(_rules_by_priority(rules))}
    matched = sorted((key for key in tags if key in ranked), key=ranked.__getitem__)
    rest = sorted(key for key in tags if key not in ranked)
    return [(key, tags[key]) for key in [*matched, *rest]]


def _compare_events(left: Event, right: Event, rules: Sequence[TagSortRule]) -> int:
    for rule in rules:
        left_value = left.tags.get(rule.tag_key)
        right_value = right.tags.get(rule.tag_key)
        if left_value is None and right_value is None:
            continue
        # 有该标签的事件始终排在没有的前面，与方向无关
        if right_value is None:
            return -1
        if left_value is None:
            return 1
        result = compare_values(left_value, right_value, rule.direction)
        if result:
            return result
    return 0


def order_events(events: Sequence[Event], preferences: SortPreferences) -> list[Event]:
    """按排序偏好对事件列表做稳定多键排序

    未启用或没有规则时原样返回输入顺序；所有规则都打平的事件保持相对顺序。
    """
    rules = _rules_by_priority(preferences.active_rules())
    if not rules:
        return list(events)
    return sorted(events, key=cmp_to_key(lambda a, b: _compare_events(a, b, rules)))


def collect_tag_keys(events: Iterable[Event]) -> list[str]:
    """所有事件中出现过的标签 key（去重后升序），用作新规则的候选"""
    keys: set[str] = set()
    for event in events:
        keys.update(event.tags)
    return sorted(keys)
