"""
配对策略模块
在配对图上把所有节点划分为两两一组（奇数时剩一人轮空）
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Type

from .graph import Graph


@dataclass
class MatchOutcome:
    """一轮配对结果: pairs 中每对满足 i < j，singleton 为轮空节点（至多一个）"""
    pairs: List[Tuple[int, int]] = field(default_factory=list)
    singleton: Optional[int] = None
    
    def covered_indices(self) -> List[int]:
        """结果覆盖的全部索引（配对成员 + 轮空）"""
        indices = [index for pair in self.pairs for index in pair]
        if self.singleton is not None:
            indices.append(self.singleton)
        return indices


class PairingStrategy(ABC):
    """配对策略基类: 定义配对策略接口"""
    
    name = 'base'
    
    @abstractmethod
    def generate_pairs(self, graph: Graph) -> MatchOutcome:
        """生成本轮配对，不得修改图"""
        pass


class GreedyPairingStrategy(PairingStrategy):
    """贪心配对策略: 按索引升序，为每个未配对节点挑选历史权重最小的未配对节点
    
    同权重时取索引最小者。非全局最优（不回溯、不找增广路），
    但结果完全确定，O(n^2)。
    """
    
    name = 'greedy'
    
    def generate_pairs(self, graph: Graph) -> MatchOutcome:
        seen: Set[int] = set()
        outcome = MatchOutcome()
        
        for i in range(graph.node_count):
            if i in seen:
                continue
            
            best_other = None
            min_weight = None
            for other, weight in graph.edges_for(i):
                if other in seen:
                    continue
                # 严格小于: 同权重时保留先遇到的（索引更小的）
                if min_weight is None or weight < min_weight:
                    best_other = other
                    min_weight = weight
            
            if best_other is None:
                outcome.singleton = i
                seen.add(i)
                continue
            
            outcome.pairs.append((min(i, best_other), max(i, best_other)))
            seen.add(i)
            seen.add(best_other)
        
        return outcome


PAIRING_STRATEGIES: Dict[str, Type[PairingStrategy]] = {
    GreedyPairingStrategy.name: GreedyPairingStrategy,
}


def get_pairing_strategy(name: str) -> PairingStrategy:
    """按名称创建配对策略实例"""
    strategy_cls = PAIRING_STRATEGIES.get(name)
    if strategy_cls is None:
        raise ValueError(f"不支持的配对策略: {name}")
    return strategy_cls()
