import logging
import urllib.parse
from typing import List, Optional

from app.application.services.file_service import FileService
from app.domain.models.file import (
    FileAsset,
    FileStatsOverview,
    RegisterOptions,
    VariantName,
)
from app.interfaces.dependencies import (
    CurrentUser,
    OptionalUser,
    rate_limit_read,
    rate_limit_upload,
    rate_limit_write,
)
from app.interfaces.schemas import Pagination, Response
from app.interfaces.schemas.file import DownloadResponse, FileListResponse, parse_tags
from app.interfaces.service_dependencies import get_file_service
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from starlette.responses import StreamingResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/files", tags=["文件模块"])


@router.post(
    path="/upload/{domain}",
    response_model=Response[FileAsset],
    summary="文件上传接口",
    description="上传图片并登记到指定业务域，尺寸变体在后台生成",
    dependencies=[Depends(rate_limit_upload)],
)
async def upload_file(
    domain: str,
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    reference_id: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    is_public: bool = Form(True),
    file_service: FileService = Depends(get_file_service),
) -> Response[FileAsset]:
    """上传文件，reference_id为空时以上传者id作为所属实体"""
    # 1.读取上传内容并登记
    data = await file.read()
    asset = await file_service.upload_asset(
        filename=file.filename or "",
        content_type=file.content_type,
        data=data,
        domain=domain,
        reference_id=reference_id or current_user.id,
        uploader_id=current_user.id,
        options=RegisterOptions(
            tags=parse_tags(tags),
            description=description or "",
            is_public=is_public,
        ),
    )

    # 2.尺寸变体交给后台任务生成
    background_tasks.add_task(file_service.generate_variants_in_background, asset.id)
    return Response.success(msg="上传文件成功", data=asset)


@router.get(
    path="/stats/overview",
    response_model=Response[FileStatsOverview],
    summary="文件统计总览",
    description="活跃文件的总数、总大小以及按业务域的统计",
    dependencies=[Depends(rate_limit_read)],
)
async def stats_overview(
    current_user: CurrentUser,
    file_service: FileService = Depends(get_file_service),
) -> Response[FileStatsOverview]:
    return Response.success(data=await file_service.aggregate_stats())


@router.get(
    path="/domain/{domain}/{reference_id}",
    response_model=Response[List[FileAsset]],
    summary="按业务域查询文件",
    description="查询业务域+所属实体下的活跃文件，私有文件只对上传者和管理员可见",
    dependencies=[Depends(rate_limit_read)],
)
async def list_files_by_domain(
    domain: str,
    reference_id: str,
    current_user: OptionalUser,
    file_service: FileService = Depends(get_file_service),
) -> Response[List[FileAsset]]:
    assets = await file_service.query_by_domain(domain, reference_id)
    return Response.success(data=file_service.filter_visible(assets, current_user))


@router.get(
    path="/user/{user_id}",
    response_model=Response[FileListResponse],
    summary="按上传者查询文件",
    dependencies=[Depends(rate_limit_read)],
)
async def list_files_by_uploader(
    user_id: str,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    domain: Optional[str] = Query(None),
    file_service: FileService = Depends(get_file_service),
) -> Response[FileListResponse]:
    assets = await file_service.query_by_uploader(
        user_id, page=page, limit=limit, domain=domain
    )
    total = await file_service.count_by_uploader(user_id, domain=domain)
    return Response.success(
        data=FileListResponse(
            files=file_service.filter_visible(assets, current_user),
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get(
    path="/{file_id}",
    response_model=Response[FileAsset],
    summary="获取文件信息接口",
    dependencies=[Depends(rate_limit_read)],
)
async def get_file_info(
    file_id: str,
    current_user: OptionalUser,
    background_tasks: BackgroundTasks,
    file_service: FileService = Depends(get_file_service),
) -> Response[FileAsset]:
    """获取文件信息，同时异步记录一次查看"""
    asset = await file_service.get_accessible_asset(file_id, current_user)
    background_tasks.add_task(file_service.record_view, asset)
    return Response.success(msg="获取文件信息成功", data=asset)


@router.get(
    path="/{file_id}/content",
    summary="读取文件内容",
    description="返回原始文件或指定尺寸变体的内容",
    dependencies=[Depends(rate_limit_read)],
)
async def get_file_content(
    file_id: str,
    current_user: OptionalUser,
    background_tasks: BackgroundTasks,
    variant: Optional[VariantName] = Query(None),
    file_service: FileService = Depends(get_file_service),
) -> StreamingResponse:
    # 1.校验访问权限并读取内容
    asset = await file_service.get_accessible_asset(file_id, current_user)
    data, filename = await file_service.open_asset(asset, variant)
    background_tasks.add_task(file_service.record_view, asset)

    # 2.对文件名进行url编码后以内联方式返回
    encoded_filename = urllib.parse.quote(filename)
    return StreamingResponse(
        content=iter([data]),
        media_type=asset.metadata.original.mime_type,
        headers={
            "Content-Disposition": f"inline; filename*=utf-8''{encoded_filename}",
            "Content-Length": str(len(data)),
        },
    )


@router.post(
    path="/{file_id}/download",
    response_model=Response[DownloadResponse],
    summary="文件下载接口",
    description="记录一次下载并返回下载地址",
    dependencies=[Depends(rate_limit_read)],
)
async def download_file(
    file_id: str,
    current_user: OptionalUser,
    file_service: FileService = Depends(get_file_service),
) -> Response[DownloadResponse]:
    asset = await file_service.get_accessible_asset(file_id, current_user)
    await file_service.record_download(asset)
    return Response.success(
        data=DownloadResponse(
            download_url=asset.metadata.original.url,
            filename=asset.original_name,
        )
    )


@router.delete(
    path="/{file_id}",
    response_model=Response[FileAsset],
    summary="删除文件接口",
    description="软删除，只标记状态，保留文件和记录",
    dependencies=[Depends(rate_limit_write)],
)
async def delete_file(
    file_id: str,
    current_user: CurrentUser,
    file_service: FileService = Depends(get_file_service),
) -> Response[FileAsset]:
    asset = await file_service.get_asset(file_id)
    file_service.check_owner(asset, current_user)
    asset = await file_service.soft_delete(file_id)
    return Response.success(msg="删除文件成功", data=asset)


@router.delete(
    path="/{file_id}/permanent",
    response_model=Response[dict],
    summary="物理删除文件",
    description="删除原始文件、全部变体以及文件记录",
    dependencies=[Depends(rate_limit_write)],
)
async def permanently_delete_file(
    file_id: str,
    current_user: CurrentUser,
    file_service: FileService = Depends(get_file_service),
) -> Response[dict]:
    asset = await file_service.get_asset(file_id)
    file_service.check_owner(asset, current_user)
    await file_service.hard_delete(file_id)
    return Response.success(msg="文件已永久删除")


@router.post(
    path="/{file_id}/variants",
    response_model=Response[FileAsset],
    summary="重新生成尺寸变体",
    dependencies=[Depends(rate_limit_write)],
)
async def regenerate_variants(
    file_id: str,
    current_user: CurrentUser,
    file_service: FileService = Depends(get_file_service),
) -> Response[FileAsset]:
    asset = await file_service.get_asset(file_id, include_deleted=False)
    file_service.check_owner(asset, current_user)
    asset = await file_service.generate_variants(asset)
    return Response.success(msg="变体生成完成", data=asset)
