"""排序偏好路由

GET    /api/preferences/sort: 读取排序偏好
PUT    /api/preferences/sort: 整体覆盖
PUT    /api/preferences/sort/enabled: 启用/停用
PUT    /api/preferences/sort/rules/{tag_key}: 新增或更新规则
DELETE /api/preferences/sort/rules/{tag_key}: 删除规则
POST   /api/preferences/sort/reorder: 重排规则优先级
GET    /api/tags/keys: 所有事件中出现过的标签 key
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from todograph.core.models import SortDirection, SortPreferences
from todograph.core.sorting import collect_tag_keys

from ..deps import get_preferences, get_repository

router = APIRouter()


class EnabledBody(BaseModel):
    enabled: bool


class RuleBody(BaseModel):
    """规则请求体 -- order 省略时新规则追加到末尾、已有规则保持原位"""

    direction: SortDirection = SortDirection.ASC
    order: int | None = Field(default=None, ge=0)


class ReorderBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tag_keys: list[str] = Field(alias="tagKeys")


def _dump(preferences: SortPreferences) -> dict:
    return preferences.model_dump(mode="json", by_alias=True)


@router.get("/api/preferences/sort")
async def get_sort_preferences(preferences=Depends(get_preferences)):
    """读取排序偏好（首次访问时创建默认值）"""
    return _dump(await preferences.get())


@router.put("/api/preferences/sort")
async def replace_sort_preferences(
    body: SortPreferences,
    preferences=Depends(get_preferences),
):
    """整体覆盖排序偏好"""
    return _dump(await preferences.replace(body))


@router.put("/api/preferences/sort/enabled")
async def set_sort_enabled(body: EnabledBody, preferences=Depends(get_preferences)):
    """启用/停用标签排序"""
    return _dump(await preferences.set_enabled(body.enabled))


@router.put("/api/preferences/sort/rules/{tag_key}")
async def upsert_sort_rule(
    tag_key: str,
    body: RuleBody,
    preferences=Depends(get_preferences),
):
    """新增规则或更新已有规则的方向/优先级"""
    result = await preferences.upsert_rule(tag_key, body.direction, body.order)
    return _dump(result)


@router.delete("/api/preferences/sort/rules/{tag_key}")
async def remove_sort_rule(tag_key: str, preferences=Depends(get_preferences)):
    """删除规则，剩余规则重新编号"""
    return _dump(await preferences.remove_rule(tag_key))


@router.post("/api/preferences/sort/reorder")
async def reorder_sort_rules(body: ReorderBody, preferences=Depends(get_preferences)):
    """按给定 key 顺序重排全部规则"""
    return _dump(await preferences.reorder_rules(body.tag_keys))


@router.get("/api/tags/keys")
async def list_tag_keys(repository=Depends(get_repository)):
    """所有事件中出现过的标签 key（升序），用作新规则候选"""
    return {"keys": collect_tag_keys(await repository.snapshot())}
