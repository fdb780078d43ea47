from django.urls import path
from . import views

urlpatterns = [
    path('media-assets/', views.media_asset_list_create, name='media-asset-list-create'),
    path('media-assets/check-duplicate/', views.media_asset_check_duplicate, name='media-asset-check-duplicate'),
    path('media-assets/duplicates/', views.media_asset_duplicates, name='media-asset-duplicates'),
    path('media-assets/bulk-import/', views.media_asset_bulk_import, name='media-asset-bulk-import'),
    path('media-assets/<int:pk>/', views.media_asset_detail, name='media-asset-detail'),
    path('media-assets/<int:pk>/bookings/', views.media_asset_bookings, name='media-asset-bookings'),
    path('media-assets/<int:pk>/generate-qr/', views.media_asset_generate_qr, name='media-asset-generate-qr'),
    path('media-assets/<int:pk>/unbook/', views.media_asset_unbook, name='media-asset-unbook'),
]
