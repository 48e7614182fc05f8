# Alembic 驱动脚本：image_update_* 三张表的迁移，线上/离线模式都能跑

from __future__ import annotations

import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from app.core.config import settings
from app.db.base import Base
import app.db.model  # noqa: F401  注册 operation / csv 文件记录 / blob 表


config = context.config
logger = logging.getLogger("alembic.env")


# 连接串以 Settings 为准（.env / 容器环境变量），ini 里的只是占位
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)


if config.config_file_name:
    fileConfig(config.config_file_name)


target_metadata = Base.metadata


# autogenerate 没检测到变化时不落空的 revision 文件
def _skip_empty_revision(context_, revision, directives):
    if getattr(config.cmd_opts, "autogenerate", False) and directives:
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No schema changes detected; revision not created")


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


"""离线模式：只输出 SQL，不连库"""
def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


"""在线模式：连库执行"""
def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",   # sqlite 改表走 batch
            compare_type=True,
            process_revision_directives=_skip_empty_revision,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
