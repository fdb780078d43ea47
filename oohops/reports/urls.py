from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard-kpis/', views.dashboard_kpis, name='dashboard-kpis'),
    path('reports/revenue/', views.revenue_report, name='revenue-report'),
    path('reports/outstanding/', views.outstanding_report, name='outstanding-report'),
    path('reports/clients/', views.client_summary, name='client-summary'),
    path('reports/vacant-media/', views.vacant_media, name='vacant-media'),
    path('reports/vacant-media/export/<str:fmt>/', views.vacant_media_export, name='vacant-media-export'),
]
