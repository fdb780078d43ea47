from django.urls import path
from .views import (
    campaign_list_create, campaign_detail, campaign_confirm, campaign_extend, campaign_cancel,
    campaign_public_link, media_availability,
    operations_assign_mounter, operations_my_tasks, campaign_asset_status,
    campaign_asset_photos, proof_photo_review, campaign_proof_summary, campaign_proof_notify,
    campaign_proof_export, public_campaign_tracking
)

urlpatterns = [
    # Campaign endpoints
    path('campaigns/', campaign_list_create, name='campaign-list-create'),
    path('campaigns/availability/', media_availability, name='media-availability'),
    path('campaigns/<int:pk>/', campaign_detail, name='campaign-detail'),
    path('campaigns/<int:pk>/confirm/', campaign_confirm, name='campaign-confirm'),
    path('campaigns/<int:pk>/extend/', campaign_extend, name='campaign-extend'),
    path('campaigns/<int:pk>/cancel/', campaign_cancel, name='campaign-cancel'),
    path('campaigns/<int:pk>/public-link/', campaign_public_link, name='campaign-public-link'),
    path('campaigns/<int:pk>/proofs/', campaign_proof_summary, name='campaign-proof-summary'),
    path('campaigns/<int:pk>/proofs/notify/', campaign_proof_notify, name='campaign-proof-notify'),
    path('campaigns/<int:pk>/proofs/export/<str:fmt>/', campaign_proof_export, name='campaign-proof-export'),

    # Operations endpoints
    path('operations/assign-mounter/', operations_assign_mounter, name='operations-assign-mounter'),
    path('operations/my-tasks/', operations_my_tasks, name='operations-my-tasks'),
    path('campaign-assets/<int:pk>/status/', campaign_asset_status, name='campaign-asset-status'),
    path('campaign-assets/<int:pk>/photos/', campaign_asset_photos, name='campaign-asset-photos'),
    path('proof-photos/<int:pk>/review/', proof_photo_review, name='proof-photo-review'),

    # Public tracking
    path('public/campaigns/<str:token>/', public_campaign_tracking, name='public-campaign-tracking'),
]
