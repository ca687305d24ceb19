"""基础设施: 配置、配对算法"""
