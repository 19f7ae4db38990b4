"""设计模板路由模块"""

import logging
from typing import Optional

from app.application.services.template_service import TemplateService
from app.domain.models.design_template import DesignTemplate, TemplateUsage
from app.interfaces.dependencies import AdminUser, rate_limit_read, rate_limit_write
from app.interfaces.schemas import Pagination, Response
from app.interfaces.schemas.design_template import (
    CreateTemplateRequest,
    TemplateListResponse,
    UpdateTemplateRequest,
)
from app.interfaces.schemas.memo import MemoListResponse
from app.interfaces.service_dependencies import get_template_service
from fastapi import APIRouter, Depends, Query

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/design-templates", tags=["设计模板模块"])


@router.get(
    "",
    response_model=Response[TemplateListResponse],
    summary="模板列表",
    dependencies=[Depends(rate_limit_read)],
)
async def list_templates(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    template_service: TemplateService = Depends(get_template_service),
) -> Response[TemplateListResponse]:
    templates, total = await template_service.list_templates(
        page=page, limit=limit, search=search
    )
    return Response.success(
        data=TemplateListResponse(
            templates=templates,
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get(
    "/stats/popular",
    response_model=Response[list[TemplateUsage]],
    summary="最常用模板",
    dependencies=[Depends(rate_limit_read)],
)
async def popular_templates(
    limit: int = Query(5, ge=1, le=50),
    template_service: TemplateService = Depends(get_template_service),
) -> Response[list[TemplateUsage]]:
    return Response.success(data=await template_service.popular_templates(limit=limit))


@router.get(
    "/{template_id}",
    response_model=Response[DesignTemplate],
    summary="获取模板详情",
    dependencies=[Depends(rate_limit_read)],
)
async def get_template(
    template_id: str,
    template_service: TemplateService = Depends(get_template_service),
) -> Response[DesignTemplate]:
    return Response.success(data=await template_service.get_template(template_id))


@router.post(
    "",
    response_model=Response[DesignTemplate],
    summary="创建模板",
    dependencies=[Depends(rate_limit_write)],
)
async def create_template(
    request: CreateTemplateRequest,
    admin_user: AdminUser,
    template_service: TemplateService = Depends(get_template_service),
) -> Response[DesignTemplate]:
    template = await template_service.create_template(**request.model_dump())
    return Response.success(data=template, msg="模板创建成功")


@router.put(
    "/{template_id}",
    response_model=Response[DesignTemplate],
    summary="更新模板",
    dependencies=[Depends(rate_limit_write)],
)
async def update_template(
    template_id: str,
    request: UpdateTemplateRequest,
    admin_user: AdminUser,
    template_service: TemplateService = Depends(get_template_service),
) -> Response[DesignTemplate]:
    template = await template_service.update_template(
        template_id, request.model_dump(exclude_unset=True)
    )
    return Response.success(data=template, msg="模板更新成功")


@router.delete(
    "/{template_id}",
    response_model=Response[dict],
    summary="删除模板",
    description="仍被备忘录使用的模板不能删除",
    dependencies=[Depends(rate_limit_write)],
)
async def delete_template(
    template_id: str,
    admin_user: AdminUser,
    template_service: TemplateService = Depends(get_template_service),
) -> Response[dict]:
    await template_service.delete_template(template_id)
    return Response.success(msg="模板删除成功")


@router.get(
    "/{template_id}/memos",
    response_model=Response[MemoListResponse],
    summary="使用该模板的备忘录",
    dependencies=[Depends(rate_limit_read)],
)
async def list_template_memos(
    template_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    template_service: TemplateService = Depends(get_template_service),
) -> Response[MemoListResponse]:
    memos, total = await template_service.list_template_memos(
        template_id, page=page, limit=limit
    )
    return Response.success(
        data=MemoListResponse(
            memos=memos,
            pagination=Pagination.build(page, limit, total),
        )
    )
