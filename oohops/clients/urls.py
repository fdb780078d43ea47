from django.urls import path
from . import views

urlpatterns = [
    path('clients/', views.client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', views.client_detail, name='client-detail'),
    path('clients/<int:pk>/summary/', views.client_summary, name='client-summary'),
    path('clients/<int:pk>/contacts/', views.client_contact_list_create, name='client-contact-list-create'),
    path('clients/<int:pk>/contacts/<int:contact_pk>/', views.client_contact_detail, name='client-contact-detail'),
]
