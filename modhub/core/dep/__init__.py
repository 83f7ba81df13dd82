"""已安装包管理模块

拆分说明:
- models.py: 数据模型（清单、状态、已安装包）
- manifest.py: 包根目录与清单解析
- entrypoint.py: 入口能力接口与加载器
- resolver.py: 依赖解析与加载顺序
- state.py: 状态分类
- registry.py: 已安装包注册表
"""

from modhub.core.dep.entrypoint import ModuleEntryPointLoader, PackageEntryPoint, Plugin
from modhub.core.dep.models import InstalledPackage, PackageMeta, PackageState
from modhub.core.dep.registry import PackageRegistry
from modhub.core.dep.resolver import DependencyResolver

__all__ = [
    "DependencyResolver",
    "InstalledPackage",
    "ModuleEntryPointLoader",
    "PackageEntryPoint",
    "PackageMeta",
    "PackageRegistry",
    "PackageState",
    "Plugin",
]
