"""modhub - 插件 / 模组包管理器"""

__version__ = "0.1.0"
