"""
配对策略单元测试
"""

import random

import pytest

from meetmatch.infra.matching.graph import Graph
from meetmatch.infra.matching.pairing_strategies import (
    GreedyPairingStrategy,
    MatchOutcome,
    PairingStrategy,
    get_pairing_strategy,
)


def build_graph(count, weights=None):
    graph = Graph()
    for participant in range(count):
        graph.add_node(participant)
    for (i, j), weight in (weights or {}).items():
        graph.add_edge(i, j, weight)
    return graph


@pytest.mark.parametrize("count", range(0, 12))
def test_matching_covers_every_index_once(count):
    """测试任意节点数下每个索引恰好出现一次"""
    rng = random.Random(count)
    weights = {
        (i, j): rng.randint(0, 4)
        for i in range(count)
        for j in range(i + 1, count)
    }
    graph = build_graph(count, weights)
    
    outcome = GreedyPairingStrategy().generate_pairs(graph)
    
    assert len(outcome.pairs) == count // 2
    assert (outcome.singleton is not None) == (count % 2 == 1)
    covered = outcome.covered_indices()
    assert sorted(covered) == list(range(count))
    for i, j in outcome.pairs:
        assert i < j


def test_tie_break_prefers_lowest_weight():
    """测试节点0选择权重最小的节点2，剩余的1和3配对"""
    graph = build_graph(4, {
        (0, 1): 5, (0, 2): 0, (0, 3): 9,
        (1, 2): 9, (1, 3): 0, (2, 3): 5,
    })
    
    outcome = graph.matching()
    
    assert outcome.pairs == [(0, 2), (1, 3)]
    assert outcome.singleton is None


def test_equal_weights_consume_lowest_indices_first():
    """测试全部权重相等时按索引顺序配对，最大索引轮空"""
    graph = build_graph(5)
    
    outcome = graph.matching()
    
    assert outcome.pairs == [(0, 1), (2, 3)]
    assert outcome.singleton == 4


def test_equal_weights_tie_break_uses_smallest_index():
    """测试同权重候选中取索引最小者"""
    graph = build_graph(4, {(0, 1): 2, (0, 2): 1, (0, 3): 1})
    
    outcome = graph.matching()
    
    assert outcome.pairs == [(0, 2), (1, 3)]


def test_singleton_is_not_always_last_index():
    """测试轮空的是最后剩下的节点，不一定是最大索引"""
    graph = build_graph(3, {(0, 1): 1, (0, 2): 0, (1, 2): 0})
    
    outcome = graph.matching()
    
    assert outcome.pairs == [(0, 2)]
    assert outcome.singleton == 1


def test_greedy_is_not_globally_optimal():
    """测试贪心不回溯: 总权重10，而最优解为2"""
    graph = build_graph(4, {
        (0, 1): 0, (2, 3): 10,
        (0, 2): 1, (1, 3): 1,
        (0, 3): 5, (1, 2): 5,
    })
    
    outcome = graph.matching()
    
    assert outcome.pairs == [(0, 1), (2, 3)]


def test_empty_graph():
    """测试空图"""
    outcome = build_graph(0).matching()
    
    assert outcome == MatchOutcome()
    assert outcome.covered_indices() == []


def test_single_node():
    """测试单个节点直接轮空"""
    outcome = build_graph(1).matching()
    
    assert outcome.pairs == []
    assert outcome.singleton == 0


def test_get_pairing_strategy():
    """测试按名称获取策略"""
    strategy = get_pairing_strategy('greedy')
    
    assert isinstance(strategy, GreedyPairingStrategy)
    assert isinstance(strategy, PairingStrategy)


def test_get_unknown_pairing_strategy():
    """测试未知策略名"""
    with pytest.raises(ValueError):
        get_pairing_strategy('blossom')


def test_matching_accepts_custom_strategy():
    """测试Graph.matching使用传入的策略"""
    
    class FixedStrategy(PairingStrategy):
        def generate_pairs(self, graph):
            return MatchOutcome(pairs=[(0, 1)], singleton=None)
    
    outcome = build_graph(2, {(0, 1): 3}).matching(FixedStrategy())
    
    assert outcome.pairs == [(0, 1)]
