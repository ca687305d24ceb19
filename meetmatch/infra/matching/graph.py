"""
配对图模块
每轮配对时新建的无向加权完全图，边权 = 两人历史配对次数
"""

from typing import Iterator, List, Tuple, Iterable, Optional


class Graph:
    """无向加权图: 节点按加入顺序编号(从0开始)，权重矩阵始终对称且与节点数同维"""
    
    def __init__(self):
        self._nodes: List[int] = []
        self._weights: List[List[int]] = []
    
    def __len__(self) -> int:
        return len(self._nodes)
    
    def __repr__(self) -> str:
        return f"Graph(nodes={len(self._nodes)})"
    
    @property
    def node_count(self) -> int:
        return len(self._nodes)
    
    @property
    def nodes(self) -> Tuple[int, ...]:
        """按索引顺序排列的参与者ID"""
        return tuple(self._nodes)
    
    def node(self, index: int) -> int:
        """索引 -> 参与者ID"""
        self._check_index(index)
        return self._nodes[index]
    
    def add_node(self, participant_id: int) -> int:
        """添加节点，返回新分配的索引"""
        index = len(self._nodes)
        self._nodes.append(participant_id)
        for row in self._weights:
            row.append(0)
        self._weights.append([0] * len(self._nodes))
        return index
    
    def add_edge(self, i: int, j: int, weight: int) -> None:
        """设置 i、j 之间的权重（双向）"""
        if i == j:
            raise ValueError(f"不允许自环边: {i}")
        self._check_index(i)
        self._check_index(j)
        self._weights[i][j] = weight
        self._weights[j][i] = weight
    
    def weight(self, i: int, j: int) -> int:
        self._check_index(i)
        self._check_index(j)
        return self._weights[i][j]
    
    def edges_for(self, index: int) -> Iterator[Tuple[int, int]]:
        """按索引升序惰性产出 (其他节点索引, 权重)；权重0表示从未配对，不代表无边"""
        self._check_index(index)
        row = self._weights[index]
        return ((other, row[other]) for other in range(len(row)) if other != index)
    
    def apply_matching(self, pairs: Iterable[Tuple[int, int]]) -> None:
        """把一轮配对结果累加到权重上（仅用于内存中的多轮预演）"""
        for i, j in pairs:
            self.add_edge(i, j, self._weights[i][j] + 1)
    
    def matching(self, strategy: Optional["PairingStrategy"] = None) -> "MatchOutcome":
        """计算本轮配对，不修改图的权重"""
        from meetmatch.infra.matching.pairing_strategies import GreedyPairingStrategy
        
        strategy = strategy or GreedyPairingStrategy()
        return strategy.generate_pairs(self)
    
    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._nodes):
            raise IndexError(f"节点索引越界: {index} (节点数: {len(self._nodes)})")
