"""Alembic 迁移环境，使用同步驱动执行迁移"""

from logging.config import fileConfig

from alembic import context
from app.infrastructure.models import Base
from app.infrastructure.storage.migrations import sync_database_url
from core.config import get_settings
from sqlalchemy import engine_from_config, pool

config = context.config

# 由应用进程内调用时保留应用自己的日志配置
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _get_sqlalchemy_url() -> str:
    """优先使用调用方注入的连接串，否则从配置中推导同步驱动连接串"""
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    return sync_database_url(get_settings().sqlalchemy_database_url)


def run_migrations_offline() -> None:
    """离线模式：只生成SQL"""
    context.configure(
        url=_get_sqlalchemy_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """在线模式：连接数据库执行迁移"""
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _get_sqlalchemy_url()
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
