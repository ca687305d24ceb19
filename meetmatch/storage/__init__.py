"""
存储层
配对引擎只依赖 MatchStore 抽象，具体实现可替换
"""

from .base import Generation, Match, MatchStore, Person
from .memory_storage import InMemoryMatchStore
from .sqlite_storage import SQLiteMatchStore

__all__ = [
    'Generation',
    'Match',
    'MatchStore',
    'Person',
    'InMemoryMatchStore',
    'SQLiteMatchStore',
]
