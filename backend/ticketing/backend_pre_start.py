"""
应用启动前检查脚本

在应用启动前：
1. 不断重试连接数据库，直到成功或超时（Docker Compose 中数据库可能还在初始化）
2. 列出底图目录中可用的票种，方便确认部署的素材是否齐全

通常在 alembic upgrade head 之前执行（见 scripts/prestart.sh）。
"""
import logging  # 日志记录
from pathlib import Path

from sqlalchemy import Engine  # SQLAlchemy 引擎类型
from sqlmodel import Session, select  # SQLModel 会话和查询
from tenacity import (  # 重试库，用于实现重试机制
    after_log,  # 重试后的日志记录
    before_log,  # 重试前的日志记录
    retry,  # 重试装饰器
    stop_after_attempt,  # 停止条件：达到最大尝试次数
    wait_fixed,  # 等待策略：固定间隔
)

from ticketing.core.config import settings
from ticketing.core.db import engine  # 数据库引擎

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 最大尝试次数：300 次（5 分钟，每秒一次）
wait_seconds = 1  # 每次重试间隔：1 秒


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init(db_engine: Engine) -> None:
    """
    检查数据库连接

    执行 select(1)，失败时由 tenacity 重试，最多 5 分钟。
    """
    try:
        with Session(db_engine) as session:
            session.exec(select(1))
    except Exception as e:
        logger.error(e)
        raise e


def available_ticket_types(assets_dir: Path) -> list[str]:
    """底图目录中的票种（{type}-ticket.png 中的 type）"""
    if not assets_dir.is_dir():
        return []
    return sorted(p.name.removesuffix("-ticket.png") for p in assets_dir.glob("*-ticket.png"))


def main() -> None:
    logger.info("Initializing service")
    init(engine)

    ticket_types = available_ticket_types(settings.TICKET_ASSETS_DIR)
    if ticket_types:
        logger.info(f"Ticket base images found for: {', '.join(ticket_types)}")
    else:
        logger.warning(f"No ticket base images found in {settings.TICKET_ASSETS_DIR}")
    logger.info("Service finished initializing")


if __name__ == "__main__":  # pragma: no cover
    main()
