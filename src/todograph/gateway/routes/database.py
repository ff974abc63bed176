"""数据库文件管理路由

GET  /api/database: 当前数据库路径与事件数量
POST /api/database/create: 在指定路径创建空数据库（不切换）
POST /api/database/validate: 校验数据库文件
POST /api/database/switch: 把运行中的服务切换到另一个数据库文件
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from todograph.core.models import DatabaseInfo

from ..deps import get_database

router = APIRouter()


class PathBody(BaseModel):
    path: str


def _dump(info: DatabaseInfo) -> dict:
    return info.model_dump(mode="json")


@router.get("/api/database")
async def get_current_database(database=Depends(get_database)):
    return _dump(await database.current())


@router.post("/api/database/create", status_code=201)
async def create_database(body: PathBody, database=Depends(get_database)):
    """创建新数据库；文件已存在时返回 400"""
    return _dump(await database.create_database(body.path))


@router.post("/api/database/validate")
async def validate_database(body: PathBody, database=Depends(get_database)):
    """校验通过返回路径与事件数量，否则按错误映射返回 400/409"""
    return _dump(await database.validate_database(body.path))


@router.post("/api/database/switch")
async def switch_database(body: PathBody, database=Depends(get_database)):
    """切换数据库；失败时继续使用原数据库"""
    return _dump(await database.switch_database(body.path))
