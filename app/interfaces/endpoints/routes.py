from fastapi import APIRouter

from . import (
    auth_routes,
    design_template_routes,
    email_queue_routes,
    file_routes,
    memo_routes,
    status_routes,
    user_routes,
)


def create_api_routes() -> APIRouter:
    """创建API路由，涵盖整个项目的所有路由管理"""

    api_router = APIRouter()

    # 认证相关路由
    api_router.include_router(auth_routes.router)

    # 系统状态
    api_router.include_router(status_routes.router)

    # 业务路由
    api_router.include_router(user_routes.router)
    api_router.include_router(design_template_routes.router)
    api_router.include_router(memo_routes.router)
    api_router.include_router(file_routes.router)

    # 管理员路由
    api_router.include_router(email_queue_routes.router)

    return api_router


router = create_api_routes()
