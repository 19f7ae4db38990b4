import random
import string
import time
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_job_id() -> str:
    """毫秒时间戳 + 9位随机base36字符"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}{suffix}"


class EmailJob(BaseModel):
    """邮件队列中的一条待发送任务，状态由所在的列表隐式表示"""

    id: str = Field(default_factory=generate_job_id)
    to: str
    subject: str
    content: str  # HTML正文
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    status: str = "pending"

    def fresh_copy(self) -> "EmailJob":
        """以相同内容生成一条新任务（新id、新创建时间），用于失败重排队"""
        return EmailJob(
            to=self.to,
            subject=self.subject,
            content=self.content,
            user_id=self.user_id,
        )


class QueueStatus(BaseModel):
    """队列状态快照，非事务一致"""

    pending_count: int = 0
    processing_count: int = 0
    is_running: bool = False
