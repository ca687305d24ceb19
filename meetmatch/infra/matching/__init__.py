"""
配对引擎
配对图、配对策略和轮次编排器
"""

from .graph import Graph
from .pairing_strategies import (
    MatchOutcome,
    PairingStrategy,
    GreedyPairingStrategy,
    PAIRING_STRATEGIES,
    get_pairing_strategy,
)
from .round_orchestrator import RoundOrchestrator, RoundResult

__all__ = [
    # 配对图
    'Graph',
    # 配对策略
    'MatchOutcome',
    'PairingStrategy',
    'GreedyPairingStrategy',
    'PAIRING_STRATEGIES',
    'get_pairing_strategy',
    # 编排器
    'RoundOrchestrator',
    'RoundResult',
]
