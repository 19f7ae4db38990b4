import asyncio
import html
import logging
from typing import Callable, Optional
from urllib.parse import quote

from app.application.errors.exceptions import DeliveryError, ValidationError
from app.domain.external.notifier import Notifier
from app.domain.external.queue_store import QueueStore
from app.domain.models.email_job import EmailJob, QueueStatus
from app.domain.models.user import User
from app.domain.repositories.uow import IUnitOfWork

logger = logging.getLogger(__name__)


def render_verification_email(
    username: str, code: str, link: str, expire_minutes: int
) -> str:
    """渲染邮箱验证邮件的HTML正文"""
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">邮箱验证</h2>
  <p>{html.escape(username)}，您好：</p>
  <p>感谢注册 Memo App，请使用下面的验证码完成邮箱验证：</p>
  <div style="background: #f4f4f4; padding: 20px; text-align: center; margin: 20px 0;">
    <span style="font-size: 32px; font-weight: bold; letter-spacing: 6px;">{code}</span>
  </div>
  <p>或点击链接直接完成验证：<a href="{html.escape(link)}">验证邮箱</a></p>
  <p style="color: #888;">验证码 {expire_minutes} 分钟内有效。如果不是您本人操作，请忽略此邮件。</p>
</div>
""".strip()


class EmailQueueService:
    """可靠邮件队列：待发送列表 + 处理中列表，投递失败时重新入队

    同一队列名只允许一个消费进程运行周期驱动。
    """

    def __init__(
        self,
        queue_store: QueueStore,
        notifier: Notifier,
        uow_factory: Callable[[], IUnitOfWork],
        queue_name: str = "email_queue",
        processing_queue_name: str = "email_processing",
        interval_seconds: float = 60,
        frontend_url: str = "http://localhost:3000",
        verification_expire_minutes: int = 60,
    ) -> None:
        """构造函数，完成邮件队列服务初始化"""
        self._store = queue_store
        self._notifier = notifier
        self._uow_factory = uow_factory
        self.queue_name = queue_name
        self.processing_queue_name = processing_queue_name
        self.interval_seconds = interval_seconds
        self._frontend_url = frontend_url.rstrip("/")
        self._verification_expire_minutes = verification_expire_minutes
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def enqueue(
        self, to: str, subject: str, content: str, user_id: Optional[str] = None
    ) -> str:
        """添加一封邮件到待发送列表尾部并返回任务id"""
        if not to or not to.strip():
            raise ValidationError("收件人不能为空")
        if not subject or not subject.strip():
            raise ValidationError("邮件主题不能为空")
        if not content:
            raise ValidationError("邮件内容不能为空")

        job = EmailJob(to=to.strip(), subject=subject, content=content, user_id=user_id)
        return await self.enqueue_job(job)

    async def enqueue_job(self, job: EmailJob) -> str:
        await self._store.push_tail(self.queue_name, job.model_dump_json())
        logger.info(f"邮件已加入队列: {job.id} -> {job.to}")
        return job.id

    async def enqueue_verification_email(self, user: User) -> str:
        """为用户生成邮箱验证邮件并入队"""
        code = user.email_verification_token or ""
        link = (
            f"{self._frontend_url}/verify-email"
            f"?token={quote(code)}&email={quote(str(user.email))}"
        )
        content = render_verification_email(
            user.username, code, link, self._verification_expire_minutes
        )
        return await self.enqueue(
            to=str(user.email),
            subject="[Memo App] 请验证您的邮箱",
            content=content,
            user_id=user.id,
        )

    async def dequeue(self) -> Optional[str]:
        """从待发送列表头部取出一条，放入处理中列表尾部，返回原始载荷"""
        return await self._store.move_head(self.queue_name, self.processing_queue_name)

    async def acknowledge(self, job_id: str) -> bool:
        """按id从处理中列表移除任务"""
        for raw in await self._store.list_all(self.processing_queue_name):
            try:
                job = EmailJob.model_validate_json(raw)
            except ValueError:
                continue
            if job.id == job_id:
                await self._store.remove_one(self.processing_queue_name, raw)
                return True
        logger.warning(f"处理中列表里未找到邮件任务: {job_id}")
        return False

    async def requeue(self, job: EmailJob) -> str:
        """以新id重新追加到待发送列表尾部，并移除处理中列表里失败的那份"""
        new_id = await self.enqueue_job(job.fresh_copy())
        await self.acknowledge(job.id)
        logger.info(f"邮件任务已重新入队: {job.id} -> {new_id}")
        return new_id

    async def _deliver(self, job: EmailJob) -> str:
        try:
            return await self._notifier.send(job.to, job.subject, job.content)
        except Exception as e:
            raise DeliveryError(f"邮件发送失败: {str(e)}", cause=e) from e

    async def process_once(self) -> Optional[EmailJob]:
        """处理一封邮件：出队 -> 移入处理中 -> 投递 -> 确认或重新入队

        Returns:
            被处理的任务，队列为空时返回None
        """
        # 1.出队
        raw = await self.dequeue()
        if raw is None:
            return None

        # 2.无法解析的任务无法投递也无法重排，直接丢弃
        try:
            job = EmailJob.model_validate_json(raw)
        except ValueError as e:
            logger.error(f"丢弃无法解析的邮件任务: {str(e)}")
            await self._store.remove_one(self.processing_queue_name, raw)
            return None

        # 3.投递，失败则重新入队
        try:
            message_id = await self._deliver(job)
        except DeliveryError as e:
            logger.warning(f"邮件[{job.id}]投递失败，重新入队: {e.msg}")
            await self.requeue(job)
            return job

        # 4.投递成功，从处理中列表移除
        await self.acknowledge(job.id)
        logger.info(f"邮件发送成功: {job.id} -> {job.to} ({message_id})")
        return job

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.process_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("邮件队列处理出错，等待下一次调度")

    def start_processing(self) -> None:
        """启动周期驱动，重复调用只记录警告"""
        if self.is_running:
            logger.warning("邮件队列处理已在运行中")
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"邮件队列处理已启动，间隔 {self.interval_seconds} 秒")

    async def stop_processing(self) -> None:
        """停止周期驱动，未运行时直接返回"""
        task = self._task
        self._task = None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("邮件队列处理已停止")

    async def status(self) -> QueueStatus:
        """当前队列长度快照"""
        return QueueStatus(
            pending_count=await self._store.length(self.queue_name),
            processing_count=await self._store.length(self.processing_queue_name),
            is_running=self.is_running,
        )

    async def clear(self) -> None:
        """清空待发送和处理中列表，不可恢复"""
        await self._store.delete_list(self.queue_name)
        await self._store.delete_list(self.processing_queue_name)
        logger.info("邮件队列已清空")

    async def broadcast(self, subject: str, content: str) -> int:
        """给所有用户各入队一封邮件，任意一次入队失败即中止"""
        async with self._uow_factory() as uow:
            recipients = await uow.user.list_emails()

        count = 0
        for user_id, email in recipients:
            await self.enqueue(to=email, subject=subject, content=content, user_id=user_id)
            count += 1
        logger.info(f"群发邮件已入队: {count} 封")
        return count
