import logging
import uuid

from app.domain.external.notifier import Notifier

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """未配置SMTP时使用，只记录日志不真正发信"""

    async def send(self, to: str, subject: str, html_body: str) -> str:
        message_id = f"<{uuid.uuid4().hex}@logging-notifier>"
        logger.info(
            f"[模拟发信] to={to}, subject={subject}, id={message_id}, "
            f"body_length={len(html_body)}"
        )
        return message_id
