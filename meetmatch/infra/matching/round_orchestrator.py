"""
配对轮次编排器
从存储读取等待名单和历史权重 -> 建图 -> 贪心配对 -> 写回存储
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from meetmatch.storage.base import Generation, MatchStore
from meetmatch.utils.logger import get_logger

from .graph import Graph
from .pairing_strategies import GreedyPairingStrategy, MatchOutcome, PairingStrategy

logger = get_logger(__name__)


@dataclass
class RoundResult:
    """一轮的结果（参与者ID而非图索引）"""
    generation: Optional[Generation] = None
    pairs: List[Tuple[int, int]] = field(default_factory=list)
    singleton: Optional[int] = None
    
    @property
    def participants(self) -> List[int]:
        """本轮消耗的全部参与者"""
        members = [pid for pair in self.pairs for pid in pair]
        if self.singleton is not None:
            members.append(self.singleton)
        return members
    
    @property
    def is_empty(self) -> bool:
        return not self.pairs and self.singleton is None


class RoundOrchestrator:
    """配对编排器: 整个 读取 -> 计算 -> 写入 过程在锁和存储事务内完成"""
    
    def __init__(self, store: MatchStore, pairing_strategy: PairingStrategy = None):
        self.store = store
        self.pairing_strategy = pairing_strategy or GreedyPairingStrategy()
        self._lock = threading.Lock()
    
    def run_round(self) -> RoundResult:
        """执行一轮配对；等待名单为空时不产生任何写入"""
        with self._lock:
            try:
                with self.store.transaction():
                    return self._run_round()
            except Exception as e:
                logger.error(f"配对轮次失败，已回滚: {type(e).__name__}: {e}")
                raise
    
    def preview(self, rounds: int = 1) -> List[RoundResult]:
        """只读预演: 模拟接下来若干轮的配对，不写入存储"""
        if rounds < 1:
            raise ValueError(f"预演轮数必须大于等于1: {rounds}")
        
        with self._lock:
            with self.store.transaction():
                waiters = sorted(self.store.list_waiters())
                if not waiters:
                    return []
                graph, _ = self._build_graph(waiters, self.store.edges_among(waiters))
        
        results = []
        for _ in range(rounds):
            outcome = graph.matching(self.pairing_strategy)
            results.append(self._to_round_result(graph, outcome, None))
            graph.apply_matching(outcome.pairs)
        return results
    
    def _run_round(self) -> RoundResult:
        waiters = sorted(self.store.list_waiters())
        if not waiters:
            logger.info("没有等待中的参与者，跳过本轮")
            return RoundResult()
        
        logger.info(f"开始配对，等待人数: {len(waiters)}")
        
        graph, index_of = self._build_graph(waiters, self.store.edges_among(waiters))
        outcome = graph.matching(self.pairing_strategy)
        
        generation = self.store.allocate_generation()
        result = self._to_round_result(graph, outcome, generation)
        
        for person1, person2 in result.pairs:
            self.store.record_match(generation.id, person1, person2)
            logger.debug(f"第 {generation.id} 轮: {person1} <-> {person2} (历史 {graph.weight(index_of[person1], index_of[person2])} 次)")
        if result.singleton is not None:
            self.store.record_match(generation.id, result.singleton, None)
            logger.debug(f"第 {generation.id} 轮: {result.singleton} 轮空")
        
        for participant in result.participants:
            self.store.clear_waiting(participant)
        
        logger.info(
            f"第 {generation.id} 轮配对完成: {len(result.pairs)} 对"
            f"{'，1 人轮空' if result.singleton is not None else ''}"
        )
        return result
    
    @staticmethod
    def _build_graph(
        waiters: List[int],
        edges: Iterable[Tuple[int, int, int]],
    ) -> Tuple[Graph, Dict[int, int]]:
        """按给定顺序分配图索引，并写入历史权重"""
        graph = Graph()
        index_of: Dict[int, int] = {}
        for participant in waiters:
            index_of[participant] = graph.add_node(participant)
        
        for person_a, person_b, weight in edges:
            if person_a not in index_of or person_b not in index_of:
                raise ValueError(f"历史边引用了不在等待名单中的参与者: ({person_a}, {person_b})")
            graph.add_edge(index_of[person_a], index_of[person_b], weight)
        
        return graph, index_of
    
    @staticmethod
    def _to_round_result(
        graph: Graph,
        outcome: MatchOutcome,
        generation: Optional[Generation],
    ) -> RoundResult:
        return RoundResult(
            generation=generation,
            pairs=[(graph.node(i), graph.node(j)) for i, j in outcome.pairs],
            singleton=graph.node(outcome.singleton) if outcome.singleton is not None else None,
        )
