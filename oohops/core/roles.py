"""
Role priority, dashboard routing and module access.

A user can hold several roles (one per company membership, plus JWT claims
coming from the client portal). The highest-priority role decides which
dashboard the frontend lands on.
"""
from typing import Iterable, Optional

ROLE_PRIORITY = [
    'admin',
    'manager',
    'finance',
    'sales',
    'operations',
    'installation',
    'monitoring',
    'monitor',
    'user',
]

PLATFORM_ADMIN_ROUTE = '/admin/platform'

DASHBOARD_ROUTES = {
    'admin': '/admin/dashboard',
    'manager': '/admin/dashboard/manager',
    'finance': '/admin/finance',
    'sales': '/admin/plans',
    'operations': '/admin/operations',
    'installation': '/mobile/installation',
    'monitoring': '/mobile/monitoring',
    'monitor': '/mobile/monitoring',
    'user': '/dashboard',
}

MODULES = [
    'assets', 'clients', 'plans', 'campaigns', 'operations',
    'finance', 'powerbills', 'reports', 'settings', 'users',
]

MODULE_ACCESS = {
    'admin': set(MODULES),
    'manager': {'assets', 'clients', 'plans', 'campaigns', 'operations', 'finance', 'powerbills', 'reports'},
    'finance': {'clients', 'campaigns', 'finance', 'powerbills', 'reports'},
    'sales': {'assets', 'clients', 'plans', 'campaigns', 'reports'},
    'operations': {'assets', 'campaigns', 'operations', 'powerbills'},
    'installation': {'operations'},
    'monitoring': {'operations', 'campaigns'},
    'monitor': {'operations', 'campaigns'},
    'user': set(),
}

# Role groups used by views
PLAN_EDITORS = ['admin', 'manager', 'sales']
CAMPAIGN_MANAGERS = ['admin', 'manager', 'sales', 'operations']
OPERATIONS_ROLES = ['admin', 'manager', 'operations']
FIELD_ROLES = ['admin', 'manager', 'operations', 'installation', 'monitoring', 'monitor']
FINANCE_ROLES = ['admin', 'manager', 'finance']
ASSET_EDITORS = ['admin', 'manager', 'operations', 'sales']
CLIENT_EDITORS = ['admin', 'manager', 'sales', 'finance']


def resolve_primary_role(roles: Iterable[str]) -> str:
    """Return the highest-priority known role, 'user' when none is present."""
    held = {r.lower() for r in roles if r}
    for role in ROLE_PRIORITY:
        if role in held:
            return role
    return 'user'


def resolve_dashboard(roles: Iterable[str], is_platform_admin: bool = False) -> str:
    """Dashboard route for the given set of roles."""
    if is_platform_admin:
        return PLATFORM_ADMIN_ROUTE
    return DASHBOARD_ROUTES[resolve_primary_role(roles)]


def can_access(role: Optional[str], module: str) -> bool:
    if not role:
        return False
    return module in MODULE_ACCESS.get(role, set())


def module_access_flags(role: Optional[str]) -> dict:
    return {f'can_access_{module}': can_access(role, module) for module in MODULES}
