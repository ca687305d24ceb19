import json
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

from meetmatch.utils.logger import get_logger

from .base import Generation, Match, MatchStore, Person

logger = get_logger(__name__)

CREATE_TABLE_PEOPLE = """
CREATE TABLE IF NOT EXISTS people (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    waiting BOOLEAN NOT NULL DEFAULT 0
);
"""

CREATE_TABLE_GENERATIONS = """
CREATE TABLE IF NOT EXISTS generations (
    id INTEGER PRIMARY KEY,
    time INTEGER NOT NULL
);
"""

CREATE_TABLE_MATCHES = """
CREATE TABLE IF NOT EXISTS matches (
    generation INTEGER NOT NULL,
    person1 INTEGER NOT NULL,
    person2 INTEGER,
    FOREIGN KEY(generation) REFERENCES generations(id),
    FOREIGN KEY(person1) REFERENCES people(id),
    FOREIGN KEY(person2) REFERENCES people(id)
);
"""

CREATE_TABLE_EDGES = """
CREATE TABLE IF NOT EXISTS edges (
    person1 INTEGER NOT NULL,
    person2 INTEGER NOT NULL,
    weight INTEGER NOT NULL,
    PRIMARY KEY(person1, person2),
    CHECK(person1 < person2),
    FOREIGN KEY(person1) REFERENCES people(id),
    FOREIGN KEY(person2) REFERENCES people(id)
);
"""

CREATE_INDEX_MATCHES = """
CREATE INDEX IF NOT EXISTS idx_matches_generation ON matches (generation);
"""


def _person_from_row(row: sqlite3.Row, prefix: str = '') -> Person:
    return Person(
        id=row[f'{prefix}id'],
        email=row[f'{prefix}email'],
        name=row[f'{prefix}name'],
        waiting=bool(row[f'{prefix}waiting']),
    )


class SQLiteMatchStore(MatchStore):
    """SQLite配对存储: 参与者名单、轮次、配对记录和历史权重"""

    def __init__(self, db_path: str, clock: Callable[[], float] = time.time) -> None:
        self.db_path = Path(db_path)
        self.clock = clock
        # 事务期间每个线程复用同一个连接
        self._local = threading.local()

        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """事务内返回事务连接，否则新建连接并在退出时提交"""
        conn = getattr(self._local, 'conn', None)
        if conn is not None:
            yield conn
            return

        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_tables(self) -> None:
        with self._connection() as conn:
            for statement in (
                CREATE_TABLE_PEOPLE,
                CREATE_TABLE_GENERATIONS,
                CREATE_TABLE_MATCHES,
                CREATE_TABLE_EDGES,
                CREATE_INDEX_MATCHES,
            ):
                conn.execute(statement)

    @contextmanager
    def transaction(self) -> Iterator["SQLiteMatchStore"]:
        """BEGIN IMMEDIATE 事务: 同一数据库上的并发轮次在此串行化，嵌套调用并入外层事务"""
        if getattr(self._local, 'conn', None) is not None:
            yield self
            return

        conn = self._connect()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            self._local.conn = conn
            try:
                yield self
            except BaseException:
                conn.execute("ROLLBACK")
                logger.warning("事务已回滚")
                raise
            conn.execute("COMMIT")
        finally:
            self._local.conn = None
            conn.close()

    # ==================== MatchStore ====================

    def list_waiters(self) -> Set[int]:
        with self._connection() as conn:
            rows = conn.execute("SELECT id FROM people WHERE waiting = 1").fetchall()
        return {row['id'] for row in rows}

    def edges_among(self, identifiers: Iterable[int]) -> List[Tuple[int, int, int]]:
        members = json.dumps(sorted(set(identifiers)))
        if members == '[]':
            return []
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT person1, person2, weight FROM edges
                WHERE person1 IN (SELECT value FROM json_each(?))
                  AND person2 IN (SELECT value FROM json_each(?))
                ORDER BY person1, person2;
                """,
                (members, members),
            ).fetchall()
        return [(row['person1'], row['person2'], row['weight']) for row in rows]

    def allocate_generation(self) -> Generation:
        now = int(self.clock())
        with self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO generations (id, time)
                VALUES ((SELECT COALESCE(MAX(id), 0) + 1 FROM generations), ?);
                """,
                (now,),
            )
            generation_id = cursor.lastrowid
        return Generation(id=generation_id, created_at=now)

    def record_match(self, generation_id: int, person1: int, person2: Optional[int]) -> None:
        if person1 == person2:
            raise ValueError(f"不能与自己配对: {person1}")
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO matches (generation, person1, person2) VALUES (?, ?, ?);",
                (generation_id, person1, person2),
            )
            if person2 is not None:
                low, high = min(person1, person2), max(person1, person2)
                conn.execute(
                    """
                    INSERT INTO edges (person1, person2, weight) VALUES (?, ?, 1)
                    ON CONFLICT(person1, person2) DO UPDATE SET weight = weight + 1;
                    """,
                    (low, high),
                )

    def clear_waiting(self, identifier: int) -> None:
        self.set_waiting(identifier, False)

    # ==================== 参与者名单 ====================

    def add_person(self, name: str, email: str) -> Person:
        """登记新参与者，邮箱唯一"""
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    "INSERT INTO people (email, name, waiting) VALUES (?, ?, 0);",
                    (email, name),
                )
                person_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise ValueError(f"邮箱已登记: {email}")
        logger.info(f"已登记参与者 {person_id}: {name} <{email}>")
        return Person(id=person_id, email=email, name=name, waiting=False)

    def get_person(self, person_id: int) -> Optional[Person]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, email, name, waiting FROM people WHERE id = ?;",
                (person_id,),
            ).fetchone()
        return _person_from_row(row) if row else None

    def find_person_by_email(self, email: str) -> Optional[Person]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, email, name, waiting FROM people WHERE email = ?;",
                (email,),
            ).fetchone()
        return _person_from_row(row) if row else None

    def all_people(self) -> List[Person]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, email, name, waiting FROM people ORDER BY id;"
            ).fetchall()
        return [_person_from_row(row) for row in rows]

    def set_waiting(self, person_id: int, waiting: bool) -> None:
        with self._connection() as conn:
            conn.execute(
                "UPDATE people SET waiting = ? WHERE id = ?;",
                (1 if waiting else 0, person_id),
            )

    def toggle_waiting(self, person_id: int) -> Optional[Person]:
        """切换等待标记，返回更新后的参与者；不存在时返回None"""
        with self._connection() as conn:
            conn.execute(
                "UPDATE people SET waiting = CASE WHEN waiting = 0 THEN 1 ELSE 0 END WHERE id = ?;",
                (person_id,),
            )
        return self.get_person(person_id)

    # ==================== 配对历史 ====================

    def generation_at(self, generation_id: int) -> Optional[Generation]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, time FROM generations WHERE id = ?;",
                (generation_id,),
            ).fetchone()
        return Generation(id=row['id'], created_at=row['time']) if row else None

    def latest_generation(self) -> Optional[Generation]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, time FROM generations ORDER BY id DESC LIMIT 1;"
            ).fetchone()
        return Generation(id=row['id'], created_at=row['time']) if row else None

    def matches_at(self, generation_id: int) -> List[Match]:
        """某一轮的全部配对，先列出成对记录，轮空记录在最后"""
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT m.generation,
                       p1.id AS p1_id, p1.email AS p1_email, p1.name AS p1_name, p1.waiting AS p1_waiting,
                       p2.id AS p2_id, p2.email AS p2_email, p2.name AS p2_name, p2.waiting AS p2_waiting
                FROM matches m
                JOIN people p1 ON m.person1 = p1.id
                LEFT JOIN people p2 ON m.person2 = p2.id
                WHERE m.generation = ?
                ORDER BY m.person2 IS NULL, m.rowid;
                """,
                (generation_id,),
            ).fetchall()
        return [
            Match(
                generation=row['generation'],
                person1=_person_from_row(row, 'p1_'),
                person2=_person_from_row(row, 'p2_') if row['p2_id'] is not None else None,
            )
            for row in rows
        ]

    def latest_matches(self) -> List[Match]:
        latest = self.latest_generation()
        if latest is None:
            return []
        return self.matches_at(latest.id)

    def matches_for(self, person_id: int) -> List[Tuple[int, Person]]:
        """某人历次配对到的对象 (轮次, 对方)，按轮次排序"""
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT m.generation, p.id, p.email, p.name, p.waiting
                FROM matches m JOIN people p ON m.person2 = p.id
                WHERE m.person1 = ?
                UNION ALL
                SELECT m.generation, p.id, p.email, p.name, p.waiting
                FROM matches m JOIN people p ON m.person1 = p.id
                WHERE m.person2 = ?
                ORDER BY 1, 2;
                """,
                (person_id, person_id),
            ).fetchall()
        return [(row['generation'], _person_from_row(row)) for row in rows]
