#!/usr/bin/env python3
"""
端到端演示脚本
在临时SQLite数据库中登记一批参与者，连续跑多轮配对，统计重复配对次数
"""

import argparse
import sys
import tempfile
from collections import Counter
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from meetmatch.infra.matching import RoundOrchestrator
from meetmatch.storage.sqlite_storage import SQLiteMatchStore
from meetmatch.utils.logger import configure_root_logger, get_logger

configure_root_logger(level='INFO', log_to_file=False)
logger = get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="MeetMatch 多轮配对演示")
    parser.add_argument('--people', type=int, default=9, help='参与者人数')
    parser.add_argument('--rounds', type=int, default=6, help='配对轮数')
    args = parser.parse_args()
    
    with tempfile.TemporaryDirectory() as tmp_dir:
        store = SQLiteMatchStore(str(Path(tmp_dir) / "demo.db"))
        for idx in range(args.people):
            person = store.add_person(f"Person {idx + 1}", f"person{idx + 1}@example.com")
            store.set_waiting(person.id, True)
        
        orchestrator = RoundOrchestrator(store)
        pair_counts = Counter()
        for _ in range(args.rounds):
            result = orchestrator.run_round()
            pair_counts.update(result.pairs)
            logger.info(f"第 {result.generation.id} 轮: {result.pairs}，轮空: {result.singleton}")
            for person in store.all_people():
                store.set_waiting(person.id, True)
        
        repeats = {pair: count for pair, count in pair_counts.items() if count > 1}
        logger.info(f"共 {args.rounds} 轮，{len(pair_counts)} 个不同组合，重复组合 {len(repeats)} 个")
        for (person1, person2), count in sorted(repeats.items()):
            logger.info(f"  {person1} <-> {person2}: {count} 次")


if __name__ == "__main__":
    main()
