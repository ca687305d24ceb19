"""
工具模块
提供日志配置与环境变量加载
"""

from meetmatch.utils.logger import (
    configure_root_logger,
    get_logger,
    setup_logger,
)

__all__ = [
    'configure_root_logger',
    'get_logger',
    'setup_logger',
]
