"""
Role checks for the admin console.

master_admin sees and edits every profile. admin sees and edits everything
except master_admin profiles. user has no admin visibility.
"""

from credovae.models.user import ADMIN_ROLES, ROLES

ELEVATED_ROLE = 'master_admin'


def can_view(actor_role, target_role):
    if actor_role == ELEVATED_ROLE:
        return True
    if actor_role in ADMIN_ROLES:
        return target_role != ELEVATED_ROLE
    return False


def can_edit(actor_role, target_role):
    return can_view(actor_role, target_role)


def can_assign_role(actor_role, role):
    if role not in ROLES:
        return False
    if role == 'user':
        return actor_role in ADMIN_ROLES
    return actor_role == ELEVATED_ROLE


def visible_roles(actor_role):
    return [role for role in ROLES if can_view(actor_role, role)]
