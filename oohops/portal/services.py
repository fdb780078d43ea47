import hashlib
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone

from .auth import PortalAccessToken
from .models import PortalUser, MagicLinkToken

logger = logging.getLogger(__name__)


class MagicLinkError(Exception):
    pass


def hash_token(raw_token):
    return hashlib.sha256(raw_token.encode()).hexdigest()


def issue_magic_link(portal_user, ip_address=None):
    """Create a single-use token for portal_user; returns the raw token"""
    raw_token = secrets.token_urlsafe(32)
    MagicLinkToken.objects.create(
        portal_user=portal_user,
        token_hash=hash_token(raw_token),
        expires_at=timezone.now() + timedelta(minutes=getattr(settings, 'MAGIC_LINK_TTL_MINUTES', 15)),
        ip_address=ip_address,
    )
    return raw_token


def magic_link_url(raw_token):
    return f"{settings.PORTAL_BASE_URL}/portal/auth?token={raw_token}"


def send_magic_link(portal_user, ip_address=None):
    """Issue and email a sign-in link. Returns True when the email went out."""
    raw_token = issue_magic_link(portal_user, ip_address=ip_address)
    minutes = getattr(settings, 'MAGIC_LINK_TTL_MINUTES', 15)
    try:
        send_mail(
            f"Sign in to the {portal_user.company.name} client portal",
            f"Hello {portal_user.name or portal_user.email},\n\n"
            f"Use this link to sign in to the client portal of {portal_user.company.name}:\n"
            f"{magic_link_url(raw_token)}\n\n"
            f"The link can be used once and expires in {minutes} minutes.\n"
            f"If you did not ask for it, you can ignore this email.",
            settings.DEFAULT_FROM_EMAIL,
            [portal_user.email],
        )
    except Exception as e:
        logger.error(f"Failed to send magic link to portal user {portal_user.pk}: {str(e)}")
        return False
    return True


def request_magic_links(email, ip_address=None):
    """Send a link to every active portal login with this email; returns how many were sent"""
    portal_users = PortalUser.objects.select_related('company', 'client').filter(
        email__iexact=email.strip(), is_active=True, client__is_active=True, company__status='active',
    )
    sent = 0
    for portal_user in portal_users:
        if send_magic_link(portal_user, ip_address=ip_address):
            sent += 1
    if not sent:
        logger.info("Magic link requested for unknown or inactive portal email")
    return sent


@transaction.atomic
def verify_magic_link(raw_token):
    """
    Consume a magic link token and return (portal_user, access_token).
    Raises MagicLinkError when the token is unknown, used or expired.
    """
    link = (
        MagicLinkToken.objects.select_for_update()
        .select_related('portal_user', 'portal_user__company')
        .filter(token_hash=hash_token(raw_token or ''))
        .first()
    )
    if link is None or not link.is_valid or not link.portal_user.is_active:
        raise MagicLinkError('Invalid or expired magic link')

    now = timezone.now()
    link.used_at = now
    link.save(update_fields=['used_at'])
    portal_user = link.portal_user
    portal_user.last_login_at = now
    portal_user.save(update_fields=['last_login_at', 'updated_at'])
    return portal_user, PortalAccessToken.for_portal_user(portal_user)
