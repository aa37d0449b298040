"""
工具路由模块

提供系统工具类的 API 端点，如健康检查等。
"""
from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from ticketing.api.deps import SessionDep
from ticketing.api.errors import database_unavailable

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
def health_check(session: SessionDep) -> bool:
    """
    健康检查端点

    请求路径: GET /api/v1/utils/health-check/

    执行一次 select(1) 确认数据库可用；数据库不可用时返回 503。
    """
    try:
        session.exec(select(1))
    except SQLAlchemyError:
        raise database_unavailable()
    return True
