"""
存储接口定义
配对轮次只通过以下五个操作与外部存储交互，外加一个事务边界
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Set, Tuple


@dataclass(frozen=True)
class Generation:
    """一次配对轮次: 单调递增的编号 + 创建时间(Unix秒)"""
    id: int
    created_at: int


@dataclass(frozen=True)
class Person:
    id: int
    email: str
    name: str
    waiting: bool = False


@dataclass(frozen=True)
class Match:
    """某一轮的一条配对记录，person2 为空表示轮空"""
    generation: int
    person1: Person
    person2: Optional[Person] = None


class MatchStore(ABC):
    """配对存储抽象: 等待名单、历史权重、轮次编号、配对记录"""
    
    @abstractmethod
    def list_waiters(self) -> Set[int]:
        """当前处于等待状态的参与者ID（顺序不保证）"""
        pass
    
    @abstractmethod
    def edges_among(self, identifiers: Iterable[int]) -> List[Tuple[int, int, int]]:
        """两端都在给定集合内的历史配对次数 (idA, idB, weight)，缺失即为0"""
        pass
    
    @abstractmethod
    def allocate_generation(self) -> Generation:
        """分配新轮次，编号 = 历史最大值 + 1"""
        pass
    
    @abstractmethod
    def record_match(self, generation_id: int, person1: int, person2: Optional[int]) -> None:
        """记录一条配对；person2 不为空时同时把两人的历史权重加1"""
        pass
    
    @abstractmethod
    def clear_waiting(self, identifier: int) -> None:
        """把参与者的等待标记置为False"""
        pass
    
    @contextmanager
    def transaction(self) -> Iterator["MatchStore"]:
        """事务边界: 正常退出时提交，异常时回滚并继续抛出
        
        默认实现不提供原子性，具体存储应覆盖此方法。
        """
        yield self
