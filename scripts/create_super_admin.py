#!/usr/bin/env python3
"""
创建超级管理员账户的CLI脚本

使用方法:
    python scripts/create_super_admin.py

脚本会交互式提示输入用户名、邮箱和密码，创建一个邮箱已验证的超级管理员账户。
"""

import asyncio
import getpass
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.domain.models.user import User, UserRole, UserStatus
from app.infrastructure.storage.postgres import get_postgres, get_uow
from core.security import get_password_hash
from pydantic import ValidationError


async def prompt_account() -> tuple[str, str, str]:
    """交互式读取用户名、邮箱和密码，并检查是否已被占用"""
    while True:
        username = input("请输入用户名 (3-30个字符): ").strip()
        email = input("请输入邮箱: ").strip().lower()
        try:
            User(username=username, email=email)
        except ValidationError as e:
            print(f"❌ 用户名或邮箱格式不正确: {e.errors()[0]['msg']}")
            continue

        async with get_uow() as uow:
            if await uow.user.get_by_username(username):
                print("❌ 该用户名已被使用，请选择其他用户名")
                continue
            if await uow.user.get_by_email(email):
                print("❌ 该邮箱已被使用，请使用其他邮箱")
                continue
        break

    while True:
        password = getpass.getpass("请输入密码 (至少8个字符): ")
        if len(password) < 8:
            print("❌ 密码长度至少8个字符，请重新输入")
            continue
        if password != getpass.getpass("请再次输入密码确认: "):
            print("❌ 两次输入的密码不一致，请重新输入")
            continue
        return username, email, password


async def main() -> int:
    print("=" * 50)
    print("  创建超级管理员账户")
    print("=" * 50)

    postgres = get_postgres()
    await postgres.init()
    try:
        async with get_uow() as uow:
            if await uow.user.exists_by_role(UserRole.SUPER_ADMIN.value):
                print("❌ 错误: 系统中已存在超级管理员账户")
                return 1

        username, email, password = await prompt_account()

        print("-" * 50)
        print(f"用户名: {username}")
        print(f"邮箱: {email}")
        print("角色: 超级管理员 (super_admin)")
        print("-" * 50)
        if input("确认创建? (y/N): ").strip().lower() != "y":
            print("已取消创建")
            return 0

        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            is_email_verified=True,
            role=UserRole.SUPER_ADMIN,
            status=UserStatus.ACTIVE,
        )
        async with get_uow() as uow:
            user = await uow.user.create(user)

        print("✅ 超级管理员账户创建成功!")
        print(f"   用户ID: {user.id}")
        print(f"   用户名: {user.username}")
        return 0
    finally:
        await postgres.shutdown()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
