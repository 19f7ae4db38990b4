"""依赖模块"""

from .auth import (
    AdminUser,
    CurrentUser,
    OptionalUser,
    get_current_user,
    get_current_user_optional,
    require_admin,
)
from .rate_limit import (
    RateLimitBucket,
    enforce_request_limit,
    rate_limit_read,
    rate_limit_upload,
    rate_limit_write,
)

__all__ = [
    "get_current_user",
    "get_current_user_optional",
    "require_admin",
    "CurrentUser",
    "OptionalUser",
    "AdminUser",
    "RateLimitBucket",
    "enforce_request_limit",
    "rate_limit_read",
    "rate_limit_write",
    "rate_limit_upload",
]
