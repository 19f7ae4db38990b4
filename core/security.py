"""安全工具模块：密码哈希、JWT 签发与校验、邮箱验证码"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from core.config import get_settings
from jose import JWTError, jwt

# bcrypt 只使用密码的前 72 个字节，哈希与校验时截断方式必须一致
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """校验明文密码与哈希是否匹配，哈希格式非法时按不匹配处理"""
    try:
        return bcrypt.checkpw(
            _password_bytes(plain_password), hashed_password.encode("utf-8")
        )
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    """生成 bcrypt 密码哈希"""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def _create_token(
    data: dict[str, Any], token_type: str, expires_delta: timedelta
) -> str:
    settings = get_settings()
    payload = {
        **data,
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(
    data: dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """创建访问令牌，默认有效期取自配置"""
    settings = get_settings()
    return _create_token(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )


def create_refresh_token(
    data: dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """创建刷新令牌，默认有效期取自配置"""
    settings = get_settings()
    return _create_token(
        data,
        "refresh",
        expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """解码并验证 JWT，签名错误或已过期时返回 None"""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def create_tokens(user_id: str, username: str, role: str) -> dict[str, str]:
    """同时签发 access_token 和 refresh_token

    Args:
        user_id: 用户 ID，写入 sub
        username: 用户名
        role: 用户角色

    Returns:
        dict: access_token、refresh_token 以及 token_type
    """
    claims = {"sub": user_id, "username": username, "role": role}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


def generate_verification_code(length: int = 6) -> str:
    """生成数字邮箱验证码"""
    return "".join(secrets.choice("0123456789") for _ in range(length))
