"""事件路由

POST   /api/events: 创建事件
GET    /api/events: 列表查询，支持 status/search/tag 筛选与 sorted 排序
GET    /api/events/{event_id}: 事件详情
PATCH  /api/events/{event_id}: 字段更新（名称/描述/标签/依赖）
DELETE /api/events/{event_id}: 删除并从依赖方中摘除
GET    /api/events/{event_id}/dependencies: 直接依赖
GET    /api/events/{event_id}/dependents: 直接依赖方
POST   /api/events/{event_id}/status: 状态流转（级联部分失败时返回 207）
POST   /api/events/{event_id}/unblock: 单独重试解除阻塞
GET    /api/events/{event_id}/tags: 按展示顺序返回标签
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from starlette.responses import JSONResponse
from todograph.core.exceptions import ValidationError
from todograph.core.models import (
    CreateEventRequest,
    Event,
    EventFilter,
    EventStatus,
    StatusChangeResult,
    UpdateEventRequest,
)
from todograph.core.sorting import order_events, order_tag_keys_for_display
from todograph.core.status_engine import StatusEngine

from ..deps import get_preferences, get_repository, get_status_engine

router = APIRouter()


class EventPatch(BaseModel):
    """PATCH 请求体 -- 省略的字段保持不变"""

    name: str | None = None
    description: str | None = None
    tags: dict[str, str] | None = None
    dependencies: list[str] | None = None


class StatusChange(BaseModel):
    """状态流转请求体"""

    status: EventStatus


def _dump(event: Event) -> dict:
    return event.model_dump(mode="json")


def _parse_tag_filters(raw: list[str] | None) -> dict[str, str] | None:
    """解析 tag=key:value 查询参数"""
    if not raw:
        return None
    tags: dict[str, str] = {}
    for item in raw:
        key, sep, value = item.partition(":")
        if not sep or not key:
            raise ValidationError(
                f"tag filter must be key:value, got {item!r}",
                field="tag",
            )
        tags[key] = value
    return tags


def _status_payload(result: StatusChangeResult) -> dict:
    return {
        "target": _dump(result.target),
        "unblocked": [_dump(e) for e in result.unblocked],
        "failures": [f.model_dump() for f in result.failures],
        "updated": StatusEngine.summarize(result),
    }


@router.post("/api/events", status_code=201)
async def create_event(
    body: CreateEventRequest,
    repository=Depends(get_repository),
):
    """创建事件，初始状态由依赖决定"""
    event = await repository.create(body)
    return _dump(event)


@router.get("/api/events")
async def list_events(
    status: EventStatus | None = Query(default=None, description="按状态精确筛选"),
    search: str | None = Query(default=None, description="名称/描述子串匹配"),
    tag: list[str] | None = Query(default=None, description="key:value，可重复"),
    sorted_: bool = Query(default=False, alias="sorted", description="应用标签排序偏好"),
    repository=Depends(get_repository),
    preferences=Depends(get_preferences),
):
    """查询事件列表，默认按 created_at 倒序"""
    event_filter = EventFilter(
        status=status,
        tags=_parse_tag_filters(tag),
        search=search,
    )
    events = await repository.list_events(event_filter)
    if sorted_:
        events = order_events(events, await preferences.get())
    return {"events": [_dump(e) for e in events]}


@router.get("/api/events/{event_id}")
async def get_event(event_id: str, repository=Depends(get_repository)):
    """查询单个事件"""
    return _dump(await repository.get(event_id))


@router.patch("/api/events/{event_id}")
async def update_event(
    event_id: str,
    body: EventPatch,
    repository=Depends(get_repository),
):
    """合并更新事件字段；依赖变更会做存在性与环检测"""
    request = UpdateEventRequest(id=event_id, **body.model_dump(exclude_unset=True))
    event = await repository.update(request)
    return _dump(event)


@router.delete("/api/events/{event_id}")
async def delete_event(event_id: str, repository=Depends(get_repository)):
    """删除事件，返回 dependencies 被改写的依赖方"""
    result = await repository.delete(event_id)
    return {
        "deleted_id": result.deleted_id,
        "detached": [_dump(e) for e in result.detached],
    }


@router.get("/api/events/{event_id}/dependencies")
async def list_dependencies(event_id: str, repository=Depends(get_repository)):
    """事件的直接依赖"""
    events = await repository.dependencies_of(event_id)
    return {"events": [_dump(e) for e in events]}


@router.get("/api/events/{event_id}/dependents")
async def list_dependents(event_id: str, repository=Depends(get_repository)):
    """直接依赖该事件的事件"""
    events = await repository.dependents_of(event_id)
    return {"events": [_dump(e) for e in events]}


@router.post("/api/events/{event_id}/status")
async def change_status(
    event_id: str,
    body: StatusChange,
    status_engine=Depends(get_status_engine),
):
    """设置事件状态

    - 200: 目标与所有级联写入成功
    - 207: 目标已提交，部分依赖方解除阻塞失败（见 failures）
    """
    result = await status_engine.set_status(event_id, body.status)
    return JSONResponse(
        status_code=207 if result.partial else 200,
        content=_status_payload(result),
    )


@router.post("/api/events/{event_id}/unblock")
async def retry_unblock(event_id: str, status_engine=Depends(get_status_engine)):
    """对单个依赖方重试解除阻塞"""
    result = await status_engine.retry_unblock(event_id)
    return _status_payload(result)


@router.get("/api/events/{event_id}/tags")
async def list_event_tags(
    event_id: str,
    repository=Depends(get_repository),
    preferences=Depends(get_preferences),
):
    """按展示顺序返回标签：命中排序规则的 key 在前，其余按字母序"""
    event = await repository.get(event_id)
    prefs = await preferences.get()
    ordered = order_tag_keys_for_display(event.tags, prefs.active_rules())
    return {"tags": [{"key": key, "value": value} for key, value in ordered]}
