import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import anyio
from app.infrastructure.logging import setup_logging
from app.infrastructure.storage.migrations import run_migrations
from app.infrastructure.storage.minio import get_minio
from app.infrastructure.storage.postgres import get_postgres
from app.infrastructure.storage.redis import get_redis
from app.interfaces.endpoints.routes import router as api_router
from app.interfaces.errors.exception_handlers import register_exception_handlers
from app.interfaces.service_dependencies import get_email_queue_service
from core.config import get_settings
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware

settings = get_settings()

setup_logging()
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "状态模块", "description": "依赖服务健康检查。"},
    {"name": "认证模块", "description": "注册、邮箱验证、登录与令牌刷新。"},
    {"name": "用户模块", "description": "用户的增删改查。"},
    {"name": "设计模板模块", "description": "备忘录设计模板及使用统计。"},
    {"name": "备忘录模块", "description": "备忘录的增删改查、带图创建与统计。"},
    {"name": "文件模块", "description": "文件上传、尺寸变体生成、访问统计与删除。"},
    {"name": "邮件队列模块", "description": "可靠邮件队列的状态查看与运维操作，仅限管理员。"},
]


async def _stop_email_queue() -> None:
    try:
        await asyncio.wait_for(get_email_queue_service().stop_processing(), timeout=30.0)
    except asyncio.TimeoutError:
        logger.warning("邮件队列停止超时，强制关闭")
    except Exception as e:
        logger.error(f"停止邮件队列时出错: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时迁移数据库并连接各依赖服务，关闭时按相反顺序释放"""
    logger.info("Memo应用正在启动")

    # 1.数据库迁移，alembic为同步实现，放到工作线程执行
    if settings.run_migrations_on_startup:
        await anyio.to_thread.run_sync(run_migrations, settings)

    # 2.连接Redis、Postgres，使用MinIO存储时连接MinIO
    redis_client = get_redis()
    await redis_client.init()
    postgres_client = get_postgres()
    await postgres_client.init()
    minio_client = get_minio() if settings.storage_backend == "minio" else None
    if minio_client is not None:
        await minio_client.init()

    # 3.启动邮件队列消费，多副本部署时只能有一个进程开启
    if settings.email_queue_worker_enabled:
        get_email_queue_service().start_processing()

    try:
        yield
    finally:
        logger.info("Memo应用正在关闭")
        await _stop_email_queue()
        if minio_client is not None:
            await minio_client.shutdown()
        await postgres_client.shutdown()
        await redis_client.shutdown()
        logger.info("Memo应用已关闭")


app = FastAPI(
    title="Memo App",
    description="备忘录应用后端，提供用户、设计模板、备忘录、文件及邮件队列相关的API",
    lifespan=lifespan,
    openapi_tags=openapi_tags,
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api")

# 本地磁盘存储时以静态文件方式提供上传的文件
if settings.storage_backend == "local":
    Path(settings.local_upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.public_base_url,
        StaticFiles(directory=settings.local_upload_dir),
        name="uploads",
    )
