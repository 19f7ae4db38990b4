from typing import Protocol


class Notifier(Protocol):
    """邮件发送协议"""

    async def send(self, to: str, subject: str, html_body: str) -> str:
        """发送一封邮件并返回消息id，失败时抛出异常"""
        ...
