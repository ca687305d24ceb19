import argparse
import time
from pathlib import Path
from typing import List, Optional

from meetmatch.core.report import export_generation
from meetmatch.infra.config import ConfigManager
from meetmatch.infra.matching import RoundOrchestrator, RoundResult, get_pairing_strategy
from meetmatch.storage.sqlite_storage import SQLiteMatchStore
from meetmatch.utils.env_loader import load_project_env
from meetmatch.utils.logger import configure_root_logger, get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / 'configs' / 'default.yaml'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='meetmatch', description="MeetMatch 一对一会面配对工具")
    parser.add_argument('--config', type=str, default=str(DEFAULT_CONFIG_PATH), help='YAML配置文件路径')
    subparsers = parser.add_subparsers(dest='command', required=True)
    
    add_person = subparsers.add_parser('add-person', help='登记新参与者')
    add_person.add_argument('--name', required=True)
    add_person.add_argument('--email', required=True)
    add_person.add_argument('--waiting', action='store_true', help='登记后直接加入等待名单')
    
    subparsers.add_parser('people', help='列出所有参与者')
    
    wait = subparsers.add_parser('wait', help='切换参与者的等待状态')
    wait.add_argument('person_id', type=int)
    
    match = subparsers.add_parser('match', help='执行一轮配对')
    match.add_argument('--dry-run', action='store_true', help='只预演，不写入数据库')
    match.add_argument('--rounds', type=int, default=None, help='预演轮数（仅 --dry-run）')
    
    matches = subparsers.add_parser('matches', help='查看某一轮的配对（默认最新一轮）')
    matches.add_argument('--generation', type=int, default=None)
    
    history = subparsers.add_parser('history', help='查看某人的历次配对')
    history.add_argument('person_id', type=int)
    
    export = subparsers.add_parser('export', help='导出某一轮的配对为CSV')
    export.add_argument('--generation', type=int, default=None)
    export.add_argument('--output-dir', type=str, default=None)
    
    return parser


def _describe(store: SQLiteMatchStore, person_id: Optional[int]) -> str:
    person = store.get_person(person_id) if person_id is not None else None
    if person is None:
        return str(person_id)
    return f"{person.name} <{person.email}>"


def _log_round(store: SQLiteMatchStore, result: RoundResult, title: str) -> None:
    logger.info(title)
    for person1, person2 in result.pairs:
        logger.info(f"  {_describe(store, person1)}  <->  {_describe(store, person2)}")
    if result.singleton is not None:
        logger.info(f"  {_describe(store, result.singleton)}  (轮空)")


def cmd_add_person(args, store: SQLiteMatchStore, config_manager: ConfigManager) -> int:
    person = store.add_person(args.name, args.email)
    if args.waiting:
        store.set_waiting(person.id, True)
    logger.info(f"参与者ID: {person.id}")
    return 0


def cmd_people(args, store: SQLiteMatchStore, config_manager: ConfigManager) -> int:
    people = store.all_people()
    if not people:
        logger.info("暂无参与者")
    for person in people:
        logger.info(f"{person.id:>5}  {person.name} <{person.email}>{'  [等待中]' if person.waiting else ''}")
    return 0


def cmd_wait(args, store: SQLiteMatchStore, config_manager: ConfigManager) -> int:
    person = store.toggle_waiting(args.person_id)
    if person is None:
        logger.error(f"参与者不存在: {args.person_id}")
        return 1
    logger.info(f"{person.name}: {'已加入等待名单' if person.waiting else '已退出等待名单'}")
    return 0


def cmd_match(args, store: SQLiteMatchStore, config_manager: ConfigManager) -> int:
    orchestrator = RoundOrchestrator(
        store,
        pairing_strategy=get_pairing_strategy(config_manager.get_pairing_strategy_name()),
    )
    
    if args.dry_run:
        rounds = args.rounds if args.rounds is not None else config_manager.get_preview_rounds()
        previews = orchestrator.preview(rounds=rounds)
        if not previews:
            logger.info("没有等待中的参与者")
        for idx, result in enumerate(previews, 1):
            _log_round(store, result, f"预演第 {idx}/{rounds} 轮")
        return 0
    
    if args.rounds is not None:
        logger.error("--rounds 只能与 --dry-run 一起使用")
        return 1
    
    result = orchestrator.run_round()
    if result.generation is None:
        logger.info("没有等待中的参与者，未产生新的轮次")
        return 0
    _log_round(store, result, f"第 {result.generation.id} 轮配对结果")
    return 0


def cmd_matches(args, store: SQLiteMatchStore, config_manager: ConfigManager) -> int:
    generation = store.latest_generation() if args.generation is None else store.generation_at(args.generation)
    if generation is None:
        logger.info("没有找到配对轮次")
        return 0 if args.generation is None else 1
    
    matched_at = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(generation.created_at))
    logger.info(f"第 {generation.id} 轮 ({matched_at})")
    for match in store.matches_at(generation.id):
        if match.person2 is None:
            logger.info(f"  {match.person1.name}  (轮空)")
        else:
            logger.info(f"  {match.person1.name}  <->  {match.person2.name}")
    return 0


def cmd_history(args, store: SQLiteMatchStore, config_manager: ConfigManager) -> int:
    person = store.get_person(args.person_id)
    if person is None:
        logger.error(f"参与者不存在: {args.person_id}")
        return 1
    
    partners = store.matches_for(person.id)
    logger.info(f"{person.name} 共配对 {len(partners)} 次")
    for generation, partner in partners:
        logger.info(f"  第 {generation} 轮: {partner.name} <{partner.email}>")
    return 0


def cmd_export(args, store: SQLiteMatchStore, config_manager: ConfigManager) -> int:
    output_dir = Path(args.output_dir) if args.output_dir else config_manager.get_report_output_dir()
    output_file = export_generation(store, output_dir, generation=args.generation)
    return 0 if output_file is not None else 1


COMMANDS = {
    'add-person': cmd_add_person,
    'people': cmd_people,
    'wait': cmd_wait,
    'match': cmd_match,
    'matches': cmd_matches,
    'history': cmd_history,
    'export': cmd_export,
}


def main(argv: Optional[List[str]] = None) -> int:
    load_project_env()
    
    parser = build_parser()
    args = parser.parse_args(argv)
    
    try:
        config_manager = ConfigManager(args.config)
        validation_errors = config_manager.validate_config()
    except (FileNotFoundError, ValueError) as e:
        configure_root_logger()
        logger.error(f"配置加载失败: {e}")
        return 1
    
    logging_settings = config_manager.get_logging_settings()
    configure_root_logger(
        level=logging_settings['level'],
        log_to_file=logging_settings['log_to_file'],
        log_file_name=logging_settings['log_file_name'],
    )
    
    if validation_errors:
        logger.error("配置验证失败，发现以下问题：")
        for error in validation_errors:
            logger.error(f"  - {error}")
        return 1
    
    store = SQLiteMatchStore(config_manager.get_storage_db_path())
    try:
        return COMMANDS[args.command](args, store, config_manager)
    except ValueError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
