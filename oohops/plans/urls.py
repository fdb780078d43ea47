from django.urls import path
from .views import (
    plan_list_create, plan_detail, plan_item_create, plan_item_detail,
    plan_submit, plan_approval_action, plan_conflict_check, plan_convert,
    plan_share, plan_shared_view, plan_export
)

urlpatterns = [
    path('plans/', plan_list_create, name='plan-list-create'),
    path('plans/shared/<str:token>/', plan_shared_view, name='plan-shared'),
    path('plans/<int:pk>/', plan_detail, name='plan-detail'),
    path('plans/<int:pk>/items/', plan_item_create, name='plan-item-create'),
    path('plans/<int:pk>/items/<int:item_pk>/', plan_item_detail, name='plan-item-detail'),
    path('plans/<int:pk>/submit/', plan_submit, name='plan-submit'),
    path('plans/<int:pk>/approval/', plan_approval_action, name='plan-approval'),
    path('plans/<int:pk>/conflicts/', plan_conflict_check, name='plan-conflicts'),
    path('plans/<int:pk>/convert/', plan_convert, name='plan-convert'),
    path('plans/<int:pk>/share/', plan_share, name='plan-share'),
    path('plans/<int:pk>/export/<str:fmt>/', plan_export, name='plan-export'),
]
