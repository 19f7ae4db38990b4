from typing import List, Optional, Protocol


class QueueStore(Protocol):
    """有序列表存储协议，工作队列仅依赖这些原语"""

    async def push_tail(self, list_name: str, item: str) -> None:
        """追加到列表尾部"""
        ...

    async def move_head(self, source: str, destination: str) -> Optional[str]:
        """原子地把source头部元素移到destination尾部并返回，source为空时返回None"""
        ...

    async def list_all(self, list_name: str) -> List[str]:
        """按顺序返回列表全部元素"""
        ...

    async def remove_one(self, list_name: str, item: str) -> None:
        """从列表中移除一个与item相等的元素"""
        ...

    async def delete_list(self, list_name: str) -> None:
        """删除整个列表"""
        ...

    async def length(self, list_name: str) -> int:
        """获取列表长度"""
        ...
