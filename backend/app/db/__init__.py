# 数据库入口：会话工厂 + 建表/删表（本地空库、测试用）

from typing import Optional

from sqlalchemy.engine import Engine

from .session import engine, SessionLocal, get_db, dispose_engine
from .base import Base
from . import model  # noqa: F401  operation / csv 文件记录 / blob 三张表注册到 Base.metadata


"""
    本地空库或测试里快速建表（不传 bind 时用 settings.DATABASE_URL 的 engine）：
        python -c "from app.db import create_all; create_all()"
    线上库请用 `alembic upgrade head`
"""
def create_all(bind: Optional[Engine] = None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def drop_all(bind: Optional[Engine] = None) -> None:
    Base.metadata.drop_all(bind=bind or engine)
