from django.urls import path
from . import views

app_name = 'messes'

urlpatterns = [
    # GET  /api/mess/   - Current mess details (member)
    # POST /api/mess/   - Create mess
    path('', views.mess_root, name='mess'),
    path('search/<str:code>/', views.search_mess, name='search'),

    # Join request lifecycle
    path('join/', views.join_mess, name='join'),
    path('pending-requests/', views.pending_requests, name='pending-requests'),
    path('accept-request/', views.accept_request, name='accept-request'),
    path('reject-request/', views.reject_request, name='reject-request'),
    path('cancel-request/', views.cancel_request, name='cancel-request'),
    path('check-request-status/', views.check_request_status, name='check-request-status'),

    # Membership
    path('leave/', views.leave_mess, name='leave'),
    path('members/<uuid:member_id>/', views.remove_member, name='remove-member'),
]
