#!/usr/bin/env python3
"""
写入默认设计模板

使用方法:
    python scripts/seed_design_templates.py

已存在同名模板时跳过，可以重复执行。
"""

import asyncio
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.domain.models.design_template import DesignTemplate
from app.infrastructure.storage.postgres import get_postgres, get_uow

DEFAULT_TEMPLATES = [
    DesignTemplate(
        name="Classic White",
        background_color="#ffffff",
        text_color="#333333",
        border_style="1px solid #e0e0e0",
        shadow_style="0 2px 8px rgba(0,0,0,0.1)",
        preview="🎨",
    ),
    DesignTemplate(
        name="Dark Theme",
        background_color="#2c3e50",
        text_color="#ecf0f1",
        border_style="1px solid #34495e",
        shadow_style="0 4px 12px rgba(0,0,0,0.3)",
        preview="🌙",
    ),
    DesignTemplate(
        name="Warm Beige",
        background_color="#f5f5dc",
        text_color="#8b4513",
        border_style="2px solid #d2b48c",
        shadow_style="0 3px 10px rgba(139,69,19,0.2)",
        preview="☕",
    ),
    DesignTemplate(
        name="Ocean Blue",
        background_color="#e8f4f8",
        text_color="#2c3e50",
        border_style="1px solid #3498db",
        shadow_style="0 2px 8px rgba(52,152,219,0.2)",
        preview="🌊",
    ),
]


async def main() -> int:
    postgres = get_postgres()
    await postgres.init()
    try:
        async with get_uow() as uow:
            existing = await uow.template.list_all(skip=0, limit=1000)
            existing_names = {template.name for template in existing}

            created = 0
            for template in DEFAULT_TEMPLATES:
                if template.name in existing_names:
                    print(f"跳过已存在的模板: {template.name}")
                    continue
                await uow.template.save(template)
                created += 1

        print(f"✅ 新增 {created} 个设计模板")
        return 0
    finally:
        await postgres.shutdown()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
