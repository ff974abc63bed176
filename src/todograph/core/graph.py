"""依赖图索引

由 EventRepository 的记录派生：
- 正向邻接：事件 -> 它依赖的事件
- 反向邻接：事件 -> 依赖它的事件
- 状态索引：事件 -> 当前状态（用于依赖满足判定）

仓库每次提交写操作后同步更新本索引；图本身不做持久化。
"""

from collections.abc import Iterable
from graphlib import CycleError, TopologicalSorter

from .exceptions import CyclicDependencyError, NotFoundError
from .models.enums import EventStatus
from .models.event import Event


class DependencyGraph:
    """依赖图：环检测、依赖满足判定、邻接查询"""

    def __init__(self) -> None:
        self._forward: dict[str, list[str]] = {}
        # dict 作为有序集合，保证依赖方的遍历顺序稳定
        self._reverse: dict[str, dict[str, None]] = {}
        self._status: dict[str, EventStatus] = {}

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._forward

    def __len__(self) -> int:
        return len(self._forward)

    # ---- 索引维护 ----

    def rebuild(self, events: Iterable[Event]) -> None:
        """从事件全集重建索引，并校验无环

        Raises:
            CyclicDependencyError: 持久化数据中存在环
        """
        events = list(events)
        self._forward.clear()
        self._reverse.clear()
        self._status.clear()
        for event in events:
            self._forward[event.id] = []
            self._reverse.setdefault(event.id, {})
            self._status[event.id] = event.status
        # 第二遍再连边，使依赖可以出现在依赖方之后
        for event in events:
            self.set_dependencies(event.id, event.dependencies)
        self.topological_order()

    def add_node(
        self,
        event_id: str,
        dependencies: Iterable[str],
        status: EventStatus,
    ) -> None:
        """加入新节点及其出边"""
        self._forward.setdefault(event_id, [])
        self._reverse.setdefault(event_id, {})
        self._status[event_id] = status
        self.set_dependencies(event_id, dependencies)

    def set_dependencies(self, event_id: str, dependencies: Iterable[str]) -> None:
        """替换节点的出边，同步维护反向邻接"""
        for old in self._forward.get(event_id, []):
            self._reverse.get(old, {}).pop(event_id, None)
        deps = list(dict.fromkeys(dependencies))
        self._forward[event_id] = deps
        for dep in deps:
            self._reverse.setdefault(dep, {})[event_id] = None

    def set_status(self, event_id: str, status: EventStatus) -> None:
        self._require(event_id)
        self._status[event_id] = status

    def remove_node(self, event_id: str) -> list[str]:
        """删除节点并从所有依赖方的出边中摘除它

        Returns:
            出边被改写的依赖方 ID 列表
        """
        self._require(event_id)
        for dep in self._forward.pop(event_id):
            self._reverse.get(dep, {}).pop(event_id, None)
        dependents = list(self._reverse.pop(event_id, {}))
        for dependent in dependents:
            self._forward[dependent] = [
                d for d in self._forward[dependent] if d != event_id
            ]
        self._status.pop(event_id, None)
        return dependents

    # ---- 查询 ----

    def dependencies(self, event_id: str) -> list[str]:
        """直接依赖（非传递）"""
        self._require(event_id)
        return list(self._forward[event_id])

    def dependents(self, event_id: str) -> list[str]:
        """直接依赖方（非传递）"""
        self._require(event_id)
        return list(self._reverse.get(event_id, {}))

    def status_of(self, event_id: str) -> EventStatus:
        self._require(event_id)
        return self._status[event_id]

    def is_satisfied(self, event_id: str) -> bool:
        """所有依赖均为 Completed 时返回 True（无依赖视为满足）

        依赖指向不存在的事件时视为不满足。
        """
        self._require(event_id)
        return all(
            self._status.get(dep) == EventStatus.COMPLETED
            for dep in self._forward[event_id]
        )

    def would_create_cycle(
        self,
        event_id: str,
        new_dependency_ids: Iterable[str],
    ) -> bool:
        """若 event_id 改为依赖 new_dependency_ids 是否会形成环"""
        return self.find_cycle_path(event_id, new_dependency_ids) is not None

    def find_cycle_path(
        self,
        event_id: str,
        new_dependency_ids: Iterable[str],
    ) -> list[str] | None:
        """从每个候选依赖出发沿正向边做 DFS，检查能否回到 event_id

        Returns:
            环路径（首尾均为 event_id），无环时返回 None
        """
        for candidate in dict.fromkeys(new_dependency_ids):
            if candidate == event_id:
                return [event_id, event_id]
            parents: dict[str, str | None] = {candidate: None}
            stack = [candidate]
            while stack:
                node = stack.pop()
                for nxt in self._forward.get(node, []):
                    if nxt in parents:
                        continue
                    parents[nxt] = node
                    if nxt == event_id:
                        return self._trace_path(parents, event_id)
                    stack.append(nxt)
        return None

    def topological_order(self) -> list[str]:
        """依赖在前的拓扑序（仅包含已知节点）

        Raises:
            CyclicDependencyError: 图中存在环
        """
        sorter = TopologicalSorter(
            {
                node: [d for d in deps if d in self._forward]
                for node, deps in self._forward.items()
            }
        )
        try:
            return list(sorter.static_order())
        except CycleError as e:
            cycle = list(reversed(e.args[1]))
            raise CyclicDependencyError(cycle[0], cycle) from e

    def dangling_dependencies(self) -> dict[str, list[str]]:
        """返回指向未知事件的依赖：event_id -> 未知依赖 ID 列表"""
        dangling: dict[str, list[str]] = {}
        for node, deps in self._forward.items():
            missing = [d for d in deps if d not in self._forward]
            if missing:
                dangling[node] = missing
        return dangling

    # ---- 内部 ----

    def _require(self, event_id: str) -> None:
        if event_id not in self._forward:
            raise NotFoundError(event_id)

    @staticmethod
    def _trace_path(parents: dict[str, str | None], event_id: str) -> list[str]:
        path = [event_id]
        node = parents[event_id]
        while node is not None:
            path.append(node)
            node = parents[node]
        path.append(event_id)
        # path: event_id <- ... <- candidate <- event_id，反转为依赖方向
        return list(reversed(path))
