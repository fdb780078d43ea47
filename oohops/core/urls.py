from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, user_me,
    password_reset_request, password_reset_confirm,
    company_current, company_list, company_approve, company_suspend, company_export,
    company_user_list_create, company_user_detail,
    setting_list_create, setting_detail,
    audit_log_list, audit_log_detail,
    global_search
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/password-reset/', password_reset_request, name='password-reset'),
    path('auth/password-reset/confirm/', password_reset_confirm, name='password-reset-confirm'),

    # Company endpoints
    path('companies/', company_list, name='company-list'),
    path('companies/current/', company_current, name='company-current'),
    path('companies/current/export/', company_export, name='company-export'),
    path('companies/<int:pk>/approve/', company_approve, name='company-approve'),
    path('companies/<int:pk>/suspend/', company_suspend, name='company-suspend'),

    # Membership endpoints
    path('company-users/', company_user_list_create, name='company-user-list-create'),
    path('company-users/<int:pk>/', company_user_detail, name='company-user-detail'),

    # Setting endpoints
    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/<int:pk>/', setting_detail, name='setting-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    # Global search endpoint
    path('search/', global_search, name='global-search'),
]
