"""CLI 入口模块 -- python -m todograph.core <command>

支持的命令：
  check-graph          加载依赖图并检查环、悬空依赖、可解除阻塞的事件
  list-events [status] 按创建时间倒序列出事件，可按状态筛选
  db-path              显示当前配置的数据库路径与事件数量
  create-db <path>     在指定路径创建空数据库
  validate-db <path>   校验数据库文件是否可用
"""

import asyncio
import sys
from pathlib import Path

from .config import get_db_path

_USAGE = [
    "用法: python -m todograph.core <command>",
    "命令:",
    "  check-graph          检查依赖图一致性",
    "  list-events [status] 列出事件（status: Pending/InProgress/Completed/Blocked）",
    "  db-path              显示当前数据库路径",
    "  create-db <path>     创建新数据库",
    "  validate-db <path>   校验数据库文件",
]


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        for line in _USAGE:
            print(line)
        sys.exit(1)

    command = sys.argv[1]

    if command == "check-graph":
        ok = asyncio.run(check_graph())
        sys.exit(0 if ok else 2)
    elif command == "list-events":
        status = sys.argv[2] if len(sys.argv) > 2 else None
        asyncio.run(list_events(status))
    elif command == "db-path":
        asyncio.run(show_database())
    elif command in ("create-db", "validate-db"):
        if len(sys.argv) < 3:
            print(f"用法: python -m todograph.core {command} <path>")
            sys.exit(1)
        action = create_database if command == "create-db" else validate_database
        ok = asyncio.run(action(sys.argv[2]))
        sys.exit(0 if ok else 1)
    else:
        print(f"未知命令: {command}")
        print("可用命令: check-graph, list-events, db-path, create-db, validate-db")
        sys.exit(1)


async def check_graph() -> bool:
    """加载全部事件并报告图的一致性问题

    Returns:
        没有发现问题时返回 True
    """
    from .exceptions import CyclicDependencyError
    from .models import EventStatus
    from .repository import EventRepository
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        repository = EventRepository(store_group)
        try:
            count = await repository.load()
        except CyclicDependencyError as e:
            print(f"发现依赖环: {' -> '.join(e.cycle)}")
            return False

        graph = repository.graph
        print(f"已加载 {count} 个事件")

        ok = True
        dangling = graph.dangling_dependencies()
        for event_id, missing in dangling.items():
            ok = False
            print(f"悬空依赖: {event_id} -> {', '.join(missing)}")

        stuck = [
            event_id
            for event_id in graph.topological_order()
            if graph.status_of(event_id) == EventStatus.BLOCKED
            and graph.is_satisfied(event_id)
        ]
        for event_id in stuck:
            ok = False
            print(f"依赖已全部完成但仍为 Blocked: {event_id}")

        if ok:
            print("依赖图检查通过")
        return ok
    finally:
        await store_group.close()


async def list_events(status: str | None) -> None:
    """打印事件列表"""
    from .models import EventFilter, EventStatus
    from .repository import EventRepository
    from .store import create_store_group

    try:
        status_filter = EventStatus(status) if status else None
    except ValueError:
        print(f"未知状态: {status}")
        sys.exit(1)

    store_group = await create_store_group(get_db_path())
    try:
        repository = EventRepository(store_group)
        await repository.load()
        events = await repository.list_events(EventFilter(status=status_filter))
        for event in events:
            deps = f" <- {', '.join(event.dependencies)}" if event.dependencies else ""
            print(f"{event.id}  [{event.status.value}]  {event.name}{deps}")
        print(f"共 {len(events)} 个事件")
    finally:
        await store_group.close()


async def show_database() -> None:
    """打印当前配置的数据库路径；文件存在时附带事件数量"""
    from .database import validate_database_file
    from .exceptions import TodoGraphError

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    if not Path(db_path).exists():
        print("数据库文件尚未创建")
        return
    try:
        info = await validate_database_file(db_path)
    except TodoGraphError as e:
        print(f"数据库不可用: {e.message}")
        return
    print(f"共 {info.event_count} 个事件")


async def create_database(path: str) -> bool:
    """创建新数据库，成功返回 True"""
    from .database import create_database_file
    from .exceptions import TodoGraphError

    try:
        info = await create_database_file(path)
    except TodoGraphError as e:
        print(f"创建失败: {e.message}")
        return False
    print(f"已创建数据库: {info.path}")
    return True


async def validate_database(path: str) -> bool:
    """校验数据库文件，可用时返回 True"""
    from .database import validate_database_file
    from .exceptions import TodoGraphError

    try:
        info = await validate_database_file(path)
    except TodoGraphError as e:
        print(f"校验失败: {e.message}")
        return False
    print(f"数据库可用: {info.path}（{info.event_count} 个事件）")
    return True


if __name__ == "__main__":
    main()
