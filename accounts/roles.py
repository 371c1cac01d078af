"""
Role resolution on top of django.contrib.auth.

    admin   - superuser or staff
    manager - member of the "manager" group
    user    - everyone else
"""

ADMIN = 'admin'
MANAGER = 'manager'
USER = 'user'

MANAGER_GROUP = 'manager'

ROLES = {
    ADMIN: {'name': 'Admin', 'level': 100},
    MANAGER: {'name': 'Manager', 'level': 50},
    USER: {'name': 'User', 'level': 10},
}


def get_role(user):
    if user is None or not user.is_authenticated:
        return None
    if user.is_superuser or user.is_staff:
        return ADMIN
    if user.groups.filter(name=MANAGER_GROUP).exists():
        return MANAGER
    return USER


def has_role(user, *roles):
    return get_role(user) in roles


def is_admin(user):
    return has_role(user, ADMIN)


def is_manager_or_admin(user):
    return has_role(user, ADMIN, MANAGER)


def serialize_user(user):
    role = get_role(user)
    return {
        'id': user.id,
        'username': user.get_username(),
        'first_name': user.first_name,
        'last_name': user.last_name,
        'email': user.email,
        'role': role,
        'role_name': ROLES[role]['name'] if role else None,
        'last_login': user.last_login.isoformat() if user.last_login else None,
    }
