"""Company scoping for API requests"""
import logging

from rest_framework.exceptions import PermissionDenied

from .models import CompanyUser

logger = logging.getLogger(__name__)


def get_membership(request, required=True):
    """
    Resolve the active company membership of the requesting user.

    The company is taken from the X-Company-ID header when present, otherwise
    the user's first active membership is used. Roles always come from the
    membership row, never from the request body.
    """
    user = getattr(request, 'user', None)
    if not user or not user.is_authenticated:
        if required:
            raise PermissionDenied('Authentication required')
        return None

    memberships = CompanyUser.objects.select_related('company').filter(
        user=user, status='active'
    ).exclude(company__status__in=['suspended', 'cancelled'])

    company_id = request.META.get('HTTP_X_COMPANY_ID')
    if company_id:
        memberships = memberships.filter(company_id=company_id)

    membership = memberships.order_by('created_at').first()
    if membership is None and required:
        logger.warning(f"No active company membership for user {user.pk} (company header={company_id})")
        raise PermissionDenied('No active company membership found')
    return membership


def require_role(membership, roles):
    """Raise PermissionDenied unless the membership role is one of roles."""
    if membership is None or membership.role not in roles:
        role = membership.role if membership else None
        raise PermissionDenied(
            f"Role '{role}' is not allowed to perform this action. Allowed roles: {', '.join(roles)}"
        )
    return membership


def require_platform_admin(membership):
    if membership is None or not membership.company.is_platform_admin or membership.role != 'admin':
        raise PermissionDenied('Platform administrator access required')
    return membership


def get_company_setting(company, key, default=None):
    setting = company.settings.filter(key=key).first()
    return setting.value if setting else default
