"""App settings with defaults, resolved from django.conf.settings."""

from django.conf import settings

DEFAULT_EVENT_CATEGORIES = ("cultural", "religious", "sports", "education", "social", "other")


def permission_cache_ttl_seconds() -> float:
    return float(getattr(settings, "PERMISSION_CACHE_TTL_SECONDS", 300))


def event_categories() -> tuple[str, ...]:
    return tuple(getattr(settings, "EVENT_CATEGORIES", DEFAULT_EVENT_CATEGORIES))


def max_party_member_count() -> int:
    return int(getattr(settings, "MAX_PARTY_MEMBER_COUNT", 20))
