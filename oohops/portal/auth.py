"""
Client portal authentication.

Portal users are not Django users. They sign in with a magic link and get
a short-lived JWT of type "portal_access" carrying portal_user_id,
client_id and company_id claims. Staff endpoints reject it because the
default JWTAuthentication only accepts "access" tokens.
"""
from datetime import timedelta

from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import BasePermission
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import Token

from .models import PortalUser


class PortalAccessToken(Token):
    token_type = 'portal_access'
    lifetime = getattr(settings, 'PORTAL_TOKEN_LIFETIME', timedelta(hours=12))

    @classmethod
    def for_portal_user(cls, portal_user):
        token = cls()
        token['portal_user_id'] = portal_user.pk
        token['client_id'] = portal_user.client_id
        token['company_id'] = portal_user.company_id
        token['email'] = portal_user.email
        return token


class PortalJWTAuthentication(JWTAuthentication):
    """Resolves a portal access token to its active PortalUser"""

    def get_validated_token(self, raw_token):
        try:
            return PortalAccessToken(raw_token)
        except TokenError as e:
            raise InvalidToken({'detail': 'Invalid or expired portal token', 'messages': [str(e)]})

    def get_user(self, validated_token):
        portal_user = PortalUser.objects.select_related('client', 'company').filter(
            pk=validated_token.get('portal_user_id'), is_active=True,
        ).first()
        if portal_user is None or portal_user.client_id != validated_token.get('client_id'):
            raise AuthenticationFailed('Portal user not found or inactive')
        if portal_user.company.status in ('suspended', 'cancelled'):
            raise AuthenticationFailed('Company account is not active')
        return portal_user


class IsPortalUser(BasePermission):
    def has_permission(self, request, view):
        return isinstance(request.user, PortalUser)
