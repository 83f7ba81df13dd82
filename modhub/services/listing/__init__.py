"""远程目录模块

- client.py: 目录拉取与反序列化（RegistryClient）
- cache.py: 两份目录的 TTL 缓存（ListingCache）
- search.py: 字段检索与名称定位
"""

from modhub.services.listing.cache import ListingCache
from modhub.services.listing.client import RegistryClient
from modhub.services.listing.search import SearchCriteria, find_listing

__all__ = [
    "ListingCache",
    "RegistryClient",
    "SearchCriteria",
    "find_listing",
]
