"""
SQLiteMatchStore单元测试
"""

import sqlite3

import pytest

from meetmatch.infra.matching.round_orchestrator import RoundOrchestrator
from meetmatch.storage.base import Generation
from meetmatch.storage.sqlite_storage import SQLiteMatchStore


@pytest.fixture
def store(tmp_path):
    """在临时目录下创建数据库（父目录自动创建）"""
    return SQLiteMatchStore(str(tmp_path / "data" / "meetmatch.db"), clock=lambda: 1700000000)


def _register(store, count, waiting=True):
    people = []
    for idx in range(count):
        person = store.add_person(f"Person {idx}", f"p{idx}@example.com")
        if waiting:
            store.set_waiting(person.id, True)
        people.append(person)
    return people


def test_add_and_get_person(store):
    """测试登记与查询参与者"""
    alice = store.add_person("Alice", "alice@example.com")
    bob = store.add_person("Bob", "bob@example.com")
    
    assert alice.id != bob.id
    assert store.get_person(alice.id).name == "Alice"
    assert store.find_person_by_email("bob@example.com") == bob
    assert store.get_person(999) is None
    assert [p.email for p in store.all_people()] == ["alice@example.com", "bob@example.com"]


def test_duplicate_email_rejected(store):
    """测试邮箱唯一"""
    store.add_person("Alice", "alice@example.com")
    
    with pytest.raises(ValueError):
        store.add_person("Alice Again", "alice@example.com")


def test_toggle_waiting(store):
    """测试切换等待状态"""
    alice, bob = _register(store, 2, waiting=False)
    
    assert store.toggle_waiting(alice.id).waiting is True
    assert store.list_waiters() == {alice.id}
    
    assert store.toggle_waiting(alice.id).waiting is False
    assert store.list_waiters() == set()
    assert store.toggle_waiting(12345) is None


def test_allocate_generation(store):
    """测试轮次编号从1开始递增"""
    assert store.latest_generation() is None
    
    first = store.allocate_generation()
    second = store.allocate_generation()
    
    assert first == Generation(id=1, created_at=1700000000)
    assert second.id == 2
    assert store.latest_generation() == second
    assert store.generation_at(1) == first
    assert store.generation_at(7) is None


def test_weight_round_trip(store):
    """测试记录配对后edges_among反映新的权重，且边按ID顺序规范化"""
    a, b, c = _register(store, 3)
    generation = store.allocate_generation()
    
    store.record_match(generation.id, a.id, b.id)
    store.record_match(generation.id, b.id, a.id)
    
    assert store.edges_among({a.id, b.id}) == [(a.id, b.id, 2)]
    assert store.edges_among([a.id, c.id]) == []
    assert store.edges_among([]) == []


def test_edges_among_excludes_outsiders(store):
    """测试只返回两端都在集合内的边"""
    a, b, c = _register(store, 3)
    generation = store.allocate_generation()
    store.record_match(generation.id, a.id, b.id)
    store.record_match(generation.id, b.id, c.id)
    
    assert store.edges_among([a.id, b.id]) == [(a.id, b.id, 1)]


def test_singleton_match_has_no_weight(store):
    """测试轮空记录不产生历史权重"""
    a, b = _register(store, 2)
    generation = store.allocate_generation()
    
    store.record_match(generation.id, a.id, None)
    
    assert store.edges_among([a.id, b.id]) == []
    matches = store.matches_at(generation.id)
    assert len(matches) == 1
    assert matches[0].person1.id == a.id
    assert matches[0].person2 is None


def test_record_match_rejects_self(store):
    """测试不能与自己配对"""
    a, = _register(store, 1)
    generation = store.allocate_generation()
    
    with pytest.raises(ValueError):
        store.record_match(generation.id, a.id, a.id)


def test_matches_history(store):
    """测试按轮次和按人查询配对历史"""
    a, b, c = _register(store, 3)
    first = store.allocate_generation()
    store.record_match(first.id, c.id, None)
    store.record_match(first.id, a.id, b.id)
    second = store.allocate_generation()
    store.record_match(second.id, a.id, c.id)
    store.record_match(second.id, b.id, None)
    
    matches = store.matches_at(first.id)
    assert [(m.person1.id, m.person2.id if m.person2 else None) for m in matches] == [
        (a.id, b.id),
        (c.id, None),
    ]
    assert [m.generation for m in store.latest_matches()] == [second.id, second.id]
    
    assert [(g, p.id) for g, p in store.matches_for(a.id)] == [(first.id, b.id), (second.id, c.id)]
    assert [(g, p.id) for g, p in store.matches_for(c.id)] == [(second.id, a.id)]
    assert store.matches_for(b.id) == [(first.id, store.get_person(a.id))]


def test_transaction_rolls_back(store):
    """测试事务内异常时回滚全部写入"""
    a, b = _register(store, 2)
    
    with pytest.raises(RuntimeError):
        with store.transaction():
            generation = store.allocate_generation()
            store.record_match(generation.id, a.id, b.id)
            store.clear_waiting(a.id)
            raise RuntimeError("boom")
    
    assert store.latest_generation() is None
    assert store.edges_among([a.id, b.id]) == []
    assert store.list_waiters() == {a.id, b.id}


def test_round_end_to_end(store):
    """测试完整一轮: 两对 + 一人轮空，全部退出等待"""
    people = _register(store, 5)
    ids = [p.id for p in people]
    
    result = RoundOrchestrator(store).run_round()
    
    assert result.generation.id == 1
    assert result.pairs == [(ids[0], ids[1]), (ids[2], ids[3])]
    assert result.singleton == ids[4]
    assert store.list_waiters() == set()
    
    matches = store.matches_at(1)
    assert len(matches) == 3
    assert matches[-1].person1.id == ids[4]
    assert matches[-1].person2 is None
    assert store.edges_among(ids) == [(ids[0], ids[1], 1), (ids[2], ids[3], 1)]


def test_second_round_uses_history(store):
    """测试第二轮读取历史权重避免重复"""
    people = _register(store, 4)
    ids = [p.id for p in people]
    orchestrator = RoundOrchestrator(store)
    orchestrator.run_round()
    for participant in ids:
        store.set_waiting(participant, True)
    
    result = orchestrator.run_round()
    
    assert result.generation.id == 2
    assert result.pairs == [(ids[0], ids[2]), (ids[1], ids[3])]


def test_failed_round_leaves_database_unchanged(tmp_path):
    """测试写入中途失败时数据库保持原样"""
    
    class BrokenStore(SQLiteMatchStore):
        def clear_waiting(self, identifier):
            raise sqlite3.OperationalError("disk I/O error")
    
    store = BrokenStore(str(tmp_path / "broken.db"))
    people = _register(store, 4)
    
    with pytest.raises(sqlite3.OperationalError):
        RoundOrchestrator(store).run_round()
    
    assert store.latest_generation() is None
    assert store.matches_at(1) == []
    assert store.edges_among([p.id for p in people]) == []
    assert store.list_waiters() == {p.id for p in people}
