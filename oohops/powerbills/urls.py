from django.urls import path
from .views import (
    power_bill_list_create, power_bill_detail, power_bill_mark_paid, power_bill_fetch,
    power_bill_jobs, power_bill_summary_view
)

urlpatterns = [
    path('power-bills/', power_bill_list_create, name='power-bill-list-create'),
    path('power-bills/fetch/', power_bill_fetch, name='power-bill-fetch'),
    path('power-bills/jobs/', power_bill_jobs, name='power-bill-jobs'),
    path('power-bills/summary/', power_bill_summary_view, name='power-bill-summary'),
    path('power-bills/<int:pk>/', power_bill_detail, name='power-bill-detail'),
    path('power-bills/<int:pk>/mark-paid/', power_bill_mark_paid, name='power-bill-mark-paid'),
]
