from functools import lru_cache

from registrations.policies.permission_cache import PermissionCache, PermissionSnapshot


@lru_cache(maxsize=1)
def get_permission_cache() -> PermissionCache:
    """Process-wide cache backed by the Django permission store."""
    from registrations import conf
    from registrations.stores.django_store import DjangoPermissionStore

    return PermissionCache(DjangoPermissionStore(), ttl_seconds=conf.permission_cache_ttl_seconds())


__all__ = ["PermissionCache", "PermissionSnapshot", "get_permission_cache"]
