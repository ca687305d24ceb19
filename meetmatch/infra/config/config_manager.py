"""
统一配置管理器
加载和解析YAML配置文件，支持环境变量解析、配置验证
"""

from pathlib import Path
from typing import Dict, List
import yaml
import os

DEFAULT_DB_PATH = 'data/meetmatch.db'
DEFAULT_STRATEGY = 'greedy'


class ConfigManager:
    """统一配置管理器: 加载YAML配置、解析环境变量、提供配置访问接口"""
    
    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")
        
        self._config = self._load_config()
    
    def _load_config(self) -> dict:
        """加载配置文件"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"配置文件格式错误: {e}")
        if not config:
            raise ValueError("配置文件为空")
        if not isinstance(config, dict):
            raise ValueError("配置文件顶层必须是映射")
        return config
    
    def _resolve_env_var(self, value):
        """解析环境变量格式的配置值，支持格式: env_var:VARIABLE_NAME"""
        if isinstance(value, str) and value.startswith("env_var:"):
            env_key = value[8:]
            env_value = os.getenv(env_key)
            if env_value is None:
                raise ValueError(f"环境变量 {env_key} 未设置")
            return env_value
        return value
    
    def get_raw_config(self) -> dict:
        """获取原始配置字典"""
        return self._config
    
    def get_run_name(self) -> str:
        return self._config.get('run_name', 'MeetMatch')
    
    # ==================== 存储 ====================
    
    def get_storage_config(self) -> Dict:
        """获取存储配置"""
        return self._config.get('storage', {}) or {}
    
    def get_storage_db_path(self) -> str:
        """获取SQLite数据库路径"""
        sqlite_config = self.get_storage_config().get('sqlite', {}) or {}
        return str(self._resolve_env_var(sqlite_config.get('db_path', DEFAULT_DB_PATH)))
    
    # ==================== 配对 ====================
    
    def get_matching_settings(self) -> Dict:
        """获取配对设置"""
        return self._config.get('matching', {}) or {}
    
    def get_pairing_strategy_name(self) -> str:
        return self.get_matching_settings().get('strategy', DEFAULT_STRATEGY)
    
    def get_preview_rounds(self) -> int:
        """预览模式下默认模拟的轮数"""
        return int(self.get_matching_settings().get('preview_rounds', 1))
    
    # ==================== 日志 / 报告 ====================
    
    def get_logging_settings(self) -> Dict:
        """获取日志设置，缺省项使用默认值"""
        logging_config = self._config.get('logging', {}) or {}
        return {
            'level': logging_config.get('level', 'INFO'),
            'log_to_file': bool(logging_config.get('log_to_file', False)),
            'log_file_name': logging_config.get('log_file_name'),
        }
    
    def get_report_settings(self) -> Dict:
        """获取报告生成配置"""
        return self._config.get('report_settings', {}) or {}
    
    def get_report_output_dir(self) -> Path:
        return Path(self.get_report_settings().get('output_dir', 'results'))
    
    def validate_config(self) -> List[str]:
        """验证配置文件的完整性和有效性"""
        from meetmatch.infra.matching.pairing_strategies import PAIRING_STRATEGIES
        from meetmatch.utils.logger import LOG_LEVELS
        
        errors = []
        
        storage = self._config.get('storage')
        if storage is not None and not isinstance(storage, dict):
            errors.append("storage 配置必须是映射")
        else:
            try:
                if not self.get_storage_db_path():
                    errors.append("storage.sqlite.db_path 不能为空")
            except ValueError as e:
                errors.append(str(e))
        
        strategy = self.get_pairing_strategy_name()
        if strategy not in PAIRING_STRATEGIES:
            errors.append(
                f"不支持的配对策略: {strategy}，可选: {', '.join(sorted(PAIRING_STRATEGIES))}"
            )
        
        try:
            if self.get_preview_rounds() < 1:
                errors.append("matching.preview_rounds 必须大于等于 1")
        except (TypeError, ValueError):
            errors.append("matching.preview_rounds 必须是整数")
        
        level = str(self.get_logging_settings()['level']).upper()
        if level not in LOG_LEVELS:
            errors.append(f"不支持的日志级别: {level}")
        
        return errors
