"""邮件队列相关 Schema"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class SendEmailRequest(BaseModel):
    """单封邮件入队请求"""

    to: EmailStr = Field(..., description="收件人")
    subject: str = Field(..., min_length=1, description="主题")
    content: str = Field(..., min_length=1, description="HTML 内容")
    user_id: Optional[str] = Field(None, description="关联用户 ID")


class BroadcastEmailRequest(BaseModel):
    """群发邮件请求"""

    subject: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class EnqueueResponse(BaseModel):
    message_id: str


class BroadcastResponse(BaseModel):
    queued: int = 0
