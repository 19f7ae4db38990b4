"""启动时执行alembic迁移"""

import logging
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from alembic import command
from alembic.config import Config
from core.config import Settings

logger = logging.getLogger(__name__)

# alembic.ini 位于项目根目录
ALEMBIC_INI = Path(__file__).resolve().parents[3] / "alembic.ini"


def sync_database_url(async_url: str, connect_timeout: int = 5) -> str:
    """asyncpg连接串转换为psycopg2连接串，并补充连接超时参数"""
    url = async_url.replace("postgresql+asyncpg://", "postgresql+psycopg2://", 1)
    parsed = urlparse(url)
    query = dict(parse_qsl(parsed.query))
    query.setdefault("connect_timeout", str(connect_timeout))
    return urlunparse(parsed._replace(query=urlencode(query)))


def mask_password(url: str) -> str:
    parsed = urlparse(url)
    if parsed.password is None:
        return url
    port = f":{parsed.port}" if parsed.port else ""
    netloc = f"{parsed.username or ''}:***@{parsed.hostname or ''}{port}"
    return urlunparse(parsed._replace(netloc=netloc))


def run_migrations(settings: Settings) -> None:
    """升级到最新版本，同步执行，失败时直接抛出"""
    database_url = sync_database_url(settings.sqlalchemy_database_url)
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    # 保留应用自己的日志配置
    config.attributes["configure_logger"] = False

    logger.info(f"开始执行数据库迁移: {mask_password(database_url)}")
    command.upgrade(config, "head")
    logger.info("数据库迁移完成")
