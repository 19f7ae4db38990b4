"""认证服务"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.application.errors.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.application.services.email_queue_service import EmailQueueService
from app.domain.models.user import User, UserRole, UserStatus
from app.domain.repositories.uow import IUnitOfWork
from core.security import (
    create_tokens,
    decode_token,
    generate_verification_code,
    get_password_hash,
    verify_password,
)
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class AuthService:
    """认证服务，处理用户注册、邮箱验证、登录、token 刷新等"""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        email_queue: Optional[EmailQueueService] = None,
        verification_expire_minutes: int = 60,
    ) -> None:
        self._uow_factory = uow_factory
        self._email_queue = email_queue
        self._verification_expire_minutes = verification_expire_minutes

    def _new_verification(self) -> tuple[str, datetime]:
        expires = datetime.now() + timedelta(minutes=self._verification_expire_minutes)
        return generate_verification_code(), expires

    async def register(self, username: str, email: str, password: str) -> User:
        """用户注册，注册后需要完成邮箱验证才能登录

        Args:
            username: 用户名，3-30个字符
            email: 邮箱
            password: 密码，至少6位

        Returns:
            User: 新创建的用户

        Raises:
            ValidationError: 参数校验失败
            ConflictError: 用户名或邮箱已被使用
        """
        if not password or len(password) < 6:
            raise ValidationError("密码长度至少6位")

        code, expires = self._new_verification()
        try:
            user = User(
                username=username,
                email=email,
                password_hash=get_password_hash(password),
                is_email_verified=False,
                email_verification_token=code,
                email_verification_expires=expires,
                role=UserRole.USER,
                status=UserStatus.ACTIVE,
            )
        except PydanticValidationError as e:
            raise ValidationError("注册信息校验失败", data=e.errors(include_url=False))

        async with self._uow_factory() as uow:
            if await uow.user.get_by_username(user.username):
                raise ConflictError("用户名已被使用")
            if await uow.user.get_by_email(user.email):
                raise ConflictError("邮箱已被注册")
            created_user = await uow.user.create(user)

        # 验证邮件入队失败不影响注册结果，用户可以重新发送
        if self._email_queue is not None:
            try:
                await self._email_queue.enqueue_verification_email(created_user)
            except Exception as e:
                logger.error(f"验证邮件入队失败[{created_user.id}]: {str(e)}")

        logger.info(f"User registered: {created_user.id}")
        return created_user

    async def verify_email(
        self, email: str, token: str
    ) -> tuple[User, Optional[dict[str, str]]]:
        """校验邮箱验证码

        Returns:
            tuple: (用户对象, tokens 字典)；邮箱此前已验证时 tokens 为 None
        """
        if not email or not token:
            raise BadRequestError("邮箱和验证码不能为空")

        async with self._uow_factory() as uow:
            user = await uow.user.get_by_email(email)
            if not user:
                raise BadRequestError("无效的验证链接")

            if user.is_email_verified:
                return user, None

            if user.email_verification_token != token.strip():
                raise BadRequestError("验证码无效")
            if user.verification_expired():
                raise BadRequestError("验证码已过期，请重新发送验证邮件")

            user.is_email_verified = True
            user.email_verification_token = None
            user.email_verification_expires = None
            user = await uow.user.update(user)

        tokens = create_tokens(user.id, user.username, user.role.value)
        logger.info(f"Email verified for user: {user.id}")
        return user, tokens

    async def resend_verification(self, email: str) -> User:
        """重新生成验证码并发送验证邮件"""
        async with self._uow_factory() as uow:
            user = await uow.user.get_by_email(email)
            if not user:
                raise NotFoundError("用户不存在")
            if user.is_email_verified:
                raise BadRequestError("邮箱已验证")

            code, expires = self._new_verification()
            user.email_verification_token = code
            user.email_verification_expires = expires
            user = await uow.user.update(user)

        if self._email_queue is not None:
            await self._email_queue.enqueue_verification_email(user)
        return user

    async def login(self, username: str, password: str) -> tuple[User, dict[str, str]]:
        """用户登录，username 可以是用户名或邮箱

        Returns:
            tuple: (用户对象, tokens 字典)

        Raises:
            UnauthorizedError: 用户名或密码错误
            ForbiddenError: 账户被禁用或邮箱未验证
        """
        if not username or not password:
            raise BadRequestError("用户名和密码不能为空")

        async with self._uow_factory() as uow:
            user = await uow.user.get_by_username(username.strip())
            if not user and "@" in username:
                user = await uow.user.get_by_email(username)

        if not user or not user.password_hash:
            raise UnauthorizedError("用户名或密码错误")

        if not verify_password(password, user.password_hash):
            raise UnauthorizedError("用户名或密码错误")

        if not user.is_active():
            raise ForbiddenError("账户已被禁用")

        if not user.is_email_verified:
            raise ForbiddenError(
                "请先完成邮箱验证",
                data={"requires_email_verification": True, "email": user.email},
            )

        tokens = create_tokens(user.id, user.username, user.role.value)
        logger.info(f"User logged in: {user.id}")
        return user, tokens

    async def _user_from_token(self, token: str, token_type: str) -> User:
        payload = decode_token(token)
        if not payload:
            raise UnauthorizedError("无效的令牌")

        if payload.get("type") != token_type:
            raise UnauthorizedError("无效的令牌类型")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError("无效的令牌")

        async with self._uow_factory() as uow:
            user = await uow.user.get_by_id(user_id)
        if not user:
            raise UnauthorizedError("用户不存在")

        if not user.is_active():
            raise ForbiddenError("账户已被禁用")

        return user

    async def refresh_token(self, refresh_token: str) -> dict[str, str]:
        """刷新 access token"""
        user = await self._user_from_token(refresh_token, "refresh")
        tokens = create_tokens(user.id, user.username, user.role.value)
        logger.info(f"Token refreshed for user: {user.id}")
        return tokens

    async def get_current_user(self, access_token: str) -> User:
        """根据 access token 获取当前用户"""
        return await self._user_from_token(access_token, "access")
