"""备忘录路由模块"""

import logging
from typing import Literal, Optional

from app.application.services.file_service import FileService
from app.application.services.memo_service import MemoService
from app.domain.models.memo import Memo, MemoQuery, MemoStatsOverview
from app.interfaces.dependencies import (
    CurrentUser,
    OptionalUser,
    rate_limit_read,
    rate_limit_upload,
    rate_limit_write,
)
from app.interfaces.schemas import Pagination, Response
from app.interfaces.schemas.memo import (
    CreateMemoRequest,
    DuplicateMemoRequest,
    MemoListResponse,
    MemoWithImageResponse,
    UpdateMemoRequest,
)
from app.interfaces.service_dependencies import get_file_service, get_memo_service
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Query,
    UploadFile,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/memos", tags=["备忘录模块"])


@router.get(
    "",
    response_model=Response[MemoListResponse],
    summary="备忘录列表",
    description="分页查询，可按用户、模板、关键字过滤并排序",
    dependencies=[Depends(rate_limit_read)],
)
async def list_memos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: Optional[str] = Query(None),
    template_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: Literal["created_at", "updated_at", "title"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    memo_service: MemoService = Depends(get_memo_service),
) -> Response[MemoListResponse]:
    query = MemoQuery(
        page=page,
        limit=limit,
        user_id=user_id,
        template_id=template_id,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    memos, total = await memo_service.list_memos(query)
    return Response.success(
        data=MemoListResponse(
            memos=memos,
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get(
    "/stats/overview",
    response_model=Response[MemoStatsOverview],
    summary="备忘录统计总览",
    dependencies=[Depends(rate_limit_read)],
)
async def stats_overview(
    memo_service: MemoService = Depends(get_memo_service),
) -> Response[MemoStatsOverview]:
    return Response.success(data=await memo_service.stats_overview())


@router.get(
    "/{memo_id}",
    response_model=Response[Memo],
    summary="获取备忘录详情",
    dependencies=[Depends(rate_limit_read)],
)
async def get_memo(
    memo_id: str,
    memo_service: MemoService = Depends(get_memo_service),
) -> Response[Memo]:
    return Response.success(data=await memo_service.get_memo(memo_id))


@router.post(
    "",
    response_model=Response[Memo],
    summary="创建备忘录",
    dependencies=[Depends(rate_limit_write)],
)
async def create_memo(
    request: CreateMemoRequest,
    current_user: OptionalUser,
    memo_service: MemoService = Depends(get_memo_service),
) -> Response[Memo]:
    memo = await memo_service.create_memo(
        title=request.title,
        content=request.content,
        template_id=request.template_id,
        user_id=current_user.id if current_user else None,
        image_url=request.image_url,
    )
    return Response.success(data=memo, msg="备忘录创建成功")


@router.post(
    "/with-image",
    response_model=Response[MemoWithImageResponse],
    summary="创建带图片的备忘录",
    description="multipart/form-data 同时提交备忘录字段和一张图片",
    dependencies=[Depends(rate_limit_upload)],
)
async def create_memo_with_image(
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
    title: str = Form(...),
    content: str = Form(...),
    template_id: str = Form(...),
    image: UploadFile = File(...),
    memo_service: MemoService = Depends(get_memo_service),
    file_service: FileService = Depends(get_file_service),
) -> Response[MemoWithImageResponse]:
    data = await image.read()
    memo, asset = await memo_service.create_with_image(
        title=title,
        content=content,
        template_id=template_id,
        author=current_user,
        filename=image.filename or "image",
        content_type=image.content_type,
        data=data,
    )
    background_tasks.add_task(file_service.generate_variants_in_background, asset.id)
    return Response.success(
        data=MemoWithImageResponse(memo=memo, file=asset),
        msg="备忘录创建成功",
    )


@router.put(
    "/{memo_id}",
    response_model=Response[Memo],
    summary="更新备忘录",
    dependencies=[Depends(rate_limit_write)],
)
async def update_memo(
    memo_id: str,
    request: UpdateMemoRequest,
    current_user: CurrentUser,
    memo_service: MemoService = Depends(get_memo_service),
) -> Response[Memo]:
    memo = await memo_service.update_memo(
        memo_id, request.model_dump(exclude_unset=True), actor=current_user
    )
    return Response.success(data=memo, msg="备忘录更新成功")


@router.delete(
    "/{memo_id}",
    response_model=Response[dict],
    summary="删除备忘录",
    dependencies=[Depends(rate_limit_write)],
)
async def delete_memo(
    memo_id: str,
    current_user: CurrentUser,
    memo_service: MemoService = Depends(get_memo_service),
) -> Response[dict]:
    await memo_service.delete_memo(memo_id, actor=current_user)
    return Response.success(msg="备忘录删除成功")


@router.post(
    "/{memo_id}/duplicate",
    response_model=Response[Memo],
    summary="复制备忘录",
    dependencies=[Depends(rate_limit_write)],
)
async def duplicate_memo(
    memo_id: str,
    request: DuplicateMemoRequest,
    current_user: CurrentUser,
    memo_service: MemoService = Depends(get_memo_service),
) -> Response[Memo]:
    memo = await memo_service.duplicate_memo(memo_id, user_id=request.user_id)
    return Response.success(data=memo, msg="备忘录复制成功")
