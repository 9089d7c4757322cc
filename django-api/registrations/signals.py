"""Django signals for permission cache invalidation.

Grants edited outside PermissionService (Django admin, shell, fixtures,
cascades from a deleted permission) still reach the process-wide cache
through this receiver.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from registrations.models import RolePermission
from registrations.policies import get_permission_cache


@receiver([post_save, post_delete], sender=RolePermission)
def invalidate_permission_cache(sender, instance, **kwargs):
    """Invalidate the permission cache when a grant is saved or deleted."""
    get_permission_cache().invalidate()
