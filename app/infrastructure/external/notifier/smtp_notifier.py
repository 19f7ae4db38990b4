import logging
from email.message import EmailMessage
from email.utils import make_msgid

import aiosmtplib
from app.domain.external.notifier import Notifier
from core.config import Settings

logger = logging.getLogger(__name__)


class SmtpNotifier(Notifier):
    """基于aiosmtplib的邮件发送器"""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def send(self, to: str, subject: str, html_body: str) -> str:
        """发送HTML邮件并返回Message-ID，失败时异常向上抛出"""
        message = EmailMessage()
        message_id = make_msgid()
        message["From"] = self._settings.mail_from
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = message_id
        message.set_content("请使用支持HTML的邮件客户端查看此邮件。")
        message.add_alternative(html_body, subtype="html")

        await aiosmtplib.send(
            message,
            hostname=self._settings.smtp_host,
            port=self._settings.smtp_port,
            username=self._settings.smtp_username or None,
            password=self._settings.smtp_password or None,
            start_tls=self._settings.smtp_use_tls,
            timeout=self._settings.smtp_timeout_seconds,
        )
        logger.info(f"邮件发送成功: to={to}, subject={subject}, id={message_id}")
        return message_id
