"""Role-filtered navigation menu returned to clients at login"""
from .models import Role

ALL_ROLES = (Role.SUPERVISOR, Role.AMMINISTRATORE, Role.TECNICO)
MANAGERS = (Role.SUPERVISOR, Role.AMMINISTRATORE)

NAV_ITEMS = [
    {'title': 'Dashboard', 'href': '/dashboard', 'roles': ALL_ROLES},
    {'title': 'Progetti', 'href': '/projects', 'roles': ALL_ROLES},
    {'title': 'Clienti', 'href': '/clients', 'roles': ALL_ROLES},
    {'title': 'Team', 'href': '/teams', 'roles': MANAGERS},
    {'title': 'Utenti', 'href': '/users', 'roles': MANAGERS},
    {'title': 'Calendario', 'href': '/calendar', 'roles': ALL_ROLES},
    {'title': 'Tag', 'href': '/tags', 'roles': MANAGERS},
    {'title': 'File', 'href': '/files', 'roles': (Role.AMMINISTRATORE,)},
    {'title': 'Notifiche', 'href': '/notifications', 'roles': ALL_ROLES},
]


def get_navigation(role):
    """Menu entries visible to ``role``, in display order"""
    return [
        {'title': item['title'], 'href': item['href']}
        for item in NAV_ITEMS
        if role in item['roles']
    ]
