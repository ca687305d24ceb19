"""
内存存储
MatchStore 的纯内存实现，用于测试和预演
"""

import copy
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .base import Generation, MatchStore


def _edge_key(a: int, b: int) -> Tuple[int, int]:
    return (a, b) if a < b else (b, a)


class InMemoryMatchStore(MatchStore):
    """内存配对存储: 权重按 (较小ID, 较大ID) 存储，事务通过快照回滚"""
    
    def __init__(self, waiters: Iterable[int] = (), clock: Callable[[], float] = time.time):
        self.clock = clock
        self._waiting: Set[int] = set(waiters)
        self._weights: Dict[Tuple[int, int], int] = {}
        self._generations: List[Generation] = []
        self._match_rows: List[Tuple[int, int, Optional[int]]] = []
        self._lock = threading.RLock()
    
    # ==================== 测试辅助 ====================
    
    def add_waiter(self, identifier: int) -> None:
        with self._lock:
            self._waiting.add(identifier)
    
    def set_weight(self, a: int, b: int, weight: int) -> None:
        if a == b:
            raise ValueError(f"不允许自环边: {a}")
        with self._lock:
            self._weights[_edge_key(a, b)] = weight
    
    def weight(self, a: int, b: int) -> int:
        return self._weights.get(_edge_key(a, b), 0)
    
    @property
    def generations(self) -> List[Generation]:
        return list(self._generations)
    
    @property
    def match_rows(self) -> List[Tuple[int, int, Optional[int]]]:
        """(generation, person1, person2) 列表，按写入顺序"""
        return list(self._match_rows)
    
    # ==================== MatchStore ====================
    
    def list_waiters(self) -> Set[int]:
        with self._lock:
            return set(self._waiting)
    
    def edges_among(self, identifiers: Iterable[int]) -> List[Tuple[int, int, int]]:
        members = set(identifiers)
        with self._lock:
            return [
                (a, b, weight)
                for (a, b), weight in sorted(self._weights.items())
                if a in members and b in members
            ]
    
    def allocate_generation(self) -> Generation:
        with self._lock:
            next_id = max((g.id for g in self._generations), default=0) + 1
            generation = Generation(id=next_id, created_at=int(self.clock()))
            self._generations.append(generation)
            return generation
    
    def record_match(self, generation_id: int, person1: int, person2: Optional[int]) -> None:
        with self._lock:
            self._match_rows.append((generation_id, person1, person2))
            if person2 is not None:
                key = _edge_key(person1, person2)
                self._weights[key] = self._weights.get(key, 0) + 1
    
    def clear_waiting(self, identifier: int) -> None:
        with self._lock:
            self._waiting.discard(identifier)
    
    @contextmanager
    def transaction(self) -> Iterator["InMemoryMatchStore"]:
        with self._lock:
            snapshot = copy.deepcopy(
                (self._waiting, self._weights, self._generations, self._match_rows)
            )
            try:
                yield self
            except BaseException:
                self._waiting, self._weights, self._generations, self._match_rows = snapshot
                raise
