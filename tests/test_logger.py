"""
日志配置测试
"""

import logging

from meetmatch.utils import logger as logger_module
from meetmatch.utils.logger import get_logger, setup_logger


def test_get_logger_returns_named_logger():
    """测试模块日志器名称"""
    assert get_logger('meetmatch.some_module').name == 'meetmatch.some_module'


def test_setup_logger_writes_file(tmp_path, monkeypatch):
    """测试日志写入文件"""
    monkeypatch.setattr(logger_module, 'LOGS_DIR', tmp_path / "logs")
    logger = setup_logger(
        name='meetmatch.test_file_logger',
        level='DEBUG',
        log_to_file=True,
        log_to_console=False,
        log_file_name='test.log',
    )
    
    try:
        logger.debug('第 1 轮配对完成')
        for handler in logger.handlers:
            handler.flush()
        
        content = (tmp_path / "logs" / "test.log").read_text(encoding='utf-8')
        assert '第 1 轮配对完成' in content
        assert 'DEBUG' in content
        assert logger.propagate is False
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_setup_logger_is_idempotent():
    """测试已有handler时不重复添加"""
    name = 'meetmatch.test_idempotent'
    first = setup_logger(name=name, log_to_file=False)
    second = setup_logger(name=name, log_to_file=False)
    
    try:
        assert first is second
        assert len(first.handlers) == 1
        assert first.level == logging.INFO
    finally:
        for handler in list(first.handlers):
            first.removeHandler(handler)
