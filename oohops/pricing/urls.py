from django.urls import path
from . import views

urlpatterns = [
    path('pricing/rent-preview/', views.rent_preview, name='pricing-rent-preview'),
    path('pricing/validate-rate/', views.validate_rate, name='pricing-validate-rate'),
]
