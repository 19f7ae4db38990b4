import logging
from typing import Any, Optional

from app.application.errors.exceptions import AppException, TooManyRequestsError
from app.interfaces.schemas import Response
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


def _envelope(
    status_code: int,
    msg: str,
    data: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """以统一响应结构返回错误，code 与 HTTP 状态码一致"""
    body = Response(code=status_code, msg=msg, data=data if data is not None else {})
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """注册业务异常、参数校验异常、HTTP异常以及兜底异常的处理器"""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 失败: {exc.msg}", exc_info=exc)
        else:
            logger.warning(f"{request.method} {request.url.path} 失败: {exc.msg}")

        headers = None
        if isinstance(exc, TooManyRequestsError) and exc.data and "retry_after" in exc.data:
            headers = {"Retry-After": str(exc.data["retry_after"])}
        return _envelope(exc.status_code, exc.msg, exc.data, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning(f"请求参数校验失败: {request.url.path}")
        return _envelope(422, "请求参数校验失败", exc.errors())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        logger.warning(f"HTTP异常[{exc.status_code}]: {exc.detail}")
        return _envelope(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return _envelope(500, "服务器内部错误")
