from django.urls import path
from .views import (
    portal_magic_link, portal_verify, portal_me, portal_dashboard, portal_invoices, portal_invoice_detail,
    portal_invoice_pdf, portal_payments, portal_campaigns, portal_campaign_proofs,
    client_portal_users, portal_user_detail, portal_user_send_link
)

urlpatterns = [
    # Magic link sign-in
    path('portal/auth/magic-link/', portal_magic_link, name='portal-magic-link'),
    path('portal/auth/verify/', portal_verify, name='portal-verify'),

    # Client portal
    path('portal/me/', portal_me, name='portal-me'),
    path('portal/dashboard/', portal_dashboard, name='portal-dashboard'),
    path('portal/invoices/', portal_invoices, name='portal-invoices'),
    path('portal/invoices/<int:pk>/', portal_invoice_detail, name='portal-invoice-detail'),
    path('portal/invoices/<int:pk>/pdf/', portal_invoice_pdf, name='portal-invoice-pdf'),
    path('portal/payments/', portal_payments, name='portal-payments'),
    path('portal/campaigns/', portal_campaigns, name='portal-campaigns'),
    path('portal/campaigns/<int:pk>/proofs/', portal_campaign_proofs, name='portal-campaign-proofs'),

    # Staff management
    path('clients/<int:client_pk>/portal-users/', client_portal_users, name='client-portal-users'),
    path('portal-users/<int:pk>/', portal_user_detail, name='portal-user-detail'),
    path('portal-users/<int:pk>/send-link/', portal_user_send_link, name='portal-user-send-link'),
]
