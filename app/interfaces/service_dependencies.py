import logging
from functools import lru_cache
from typing import Optional

from app.application.services.auth_service import AuthService
from app.application.services.email_queue_service import EmailQueueService
from app.application.services.file_service import FileService
from app.application.services.memo_service import MemoService
from app.application.services.status_service import StatusService
from app.application.services.template_service import TemplateService
from app.application.services.user_service import UserService
from app.domain.external.blob_storage import BlobStorage
from app.domain.external.notifier import Notifier
from app.domain.external.variant_generator import VariantGenerator
from app.infrastructure.external.blob_storage.local_blob_storage import (
    LocalBlobStorage,
)
from app.infrastructure.external.blob_storage.minio_blob_storage import (
    MinioBlobStorage,
)
from app.infrastructure.external.health_checker.minio_health_checker import (
    MinioHealthChecker,
)
from app.infrastructure.external.health_checker.postgres_health_checker import (
    PostgresHealthChecker,
)
from app.infrastructure.external.health_checker.redis_health_checker import (
    RedisHealthChecker,
)
from app.infrastructure.external.notifier.logging_notifier import LoggingNotifier
from app.infrastructure.external.notifier.smtp_notifier import SmtpNotifier
from app.infrastructure.external.queue_store.redis_list_queue_store import (
    RedisListQueueStore,
)
from app.infrastructure.external.user_cache.redis_user_cache import RedisUserCache
from app.infrastructure.external.variant_generator.pillow_variant_generator import (
    PillowVariantGenerator,
)
from app.infrastructure.storage.minio import get_minio
from app.infrastructure.storage.postgres import get_db_session, get_uow
from app.infrastructure.storage.redis import RedisClient, get_redis
from core.config import get_settings
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)
settings = get_settings()


def get_blob_storage() -> BlobStorage:
    """根据配置选择MinIO或本地磁盘存储"""
    if settings.storage_backend == "local":
        return LocalBlobStorage(
            base_dir=settings.local_upload_dir,
            public_base_url=settings.public_base_url,
        )
    return MinioBlobStorage(bucket=settings.minio_bucket_name, minio_store=get_minio())


def get_variant_generator() -> Optional[VariantGenerator]:
    if not settings.image_variants_enabled:
        return None
    return PillowVariantGenerator()


def get_notifier() -> Notifier:
    """未配置SMTP时退化为只记录日志"""
    if settings.smtp_host:
        return SmtpNotifier(settings)
    logger.warning("未配置SMTP服务器，邮件只会记录到日志")
    return LoggingNotifier()


@lru_cache()
def get_email_queue_service() -> EmailQueueService:
    """进程内唯一的邮件队列服务，启动/停止由应用生命周期管理"""
    logger.info("加载获取EmailQueueService")
    return EmailQueueService(
        queue_store=RedisListQueueStore(),
        notifier=get_notifier(),
        uow_factory=get_uow,
        queue_name=settings.email_queue_name,
        processing_queue_name=settings.email_processing_queue_name,
        interval_seconds=settings.email_queue_interval_seconds,
        frontend_url=settings.frontend_url,
        verification_expire_minutes=settings.email_verification_expire_minutes,
    )


def get_auth_service(
    email_queue_service: EmailQueueService = Depends(get_email_queue_service),
) -> AuthService:
    return AuthService(
        uow_factory=get_uow,
        email_queue=email_queue_service,
        verification_expire_minutes=settings.email_verification_expire_minutes,
    )


def get_user_service() -> UserService:
    return UserService(
        uow_factory=get_uow,
        user_cache=RedisUserCache(ttl_seconds=settings.user_cache_ttl_seconds),
    )


def get_file_service() -> FileService:
    return FileService(
        uow_factory=get_uow,
        blob_storage=get_blob_storage(),
        variant_generator=get_variant_generator(),
        settings=settings,
    )


def get_memo_service(
    file_service: FileService = Depends(get_file_service),
) -> MemoService:
    return MemoService(uow_factory=get_uow, file_service=file_service)


def get_template_service() -> TemplateService:
    return TemplateService(uow_factory=get_uow)


def get_status_service(
    db_session: AsyncSession = Depends(get_db_session),
    redis_client: RedisClient = Depends(get_redis),
) -> StatusService:
    """获取状态服务"""
    # 1.初始化postgres和redis健康检查器，使用MinIO存储时额外检查MinIO
    checkers = [PostgresHealthChecker(db_session), RedisHealthChecker(redis_client)]
    if settings.storage_backend != "local":
        checkers.append(MinioHealthChecker(get_minio(), settings.minio_bucket_name))

    # 2.创建服务并返回
    logger.info("加载获取StatusService")
    return StatusService(checkers=checkers)
