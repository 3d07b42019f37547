from django.urls import path
from .views import (
    organization_list_create, organization_detail,
    member_list, member_detail,
    invitation_list_create, invitation_sent_list, invitation_detail,
    request_list_create, request_detail
)

urlpatterns = [
    # Organization endpoints
    path('organizations/', organization_list_create, name='organization-list-create'),
    path('organizations/<int:pk>/', organization_detail, name='organization-detail'),

    # Member endpoints
    path('organizations/users/', member_list, name='organization-member-list'),
    path('organizations/users/<int:pk>/', member_detail, name='organization-member-detail'),

    # Invitation endpoints
    path('organizations/invitations/', invitation_list_create, name='invitation-list-create'),
    path('organizations/invitations/sent/', invitation_sent_list, name='invitation-sent-list'),
    path('organizations/invitations/<int:pk>/', invitation_detail, name='invitation-detail'),

    # Organization request endpoints
    path('organizations/requests/', request_list_create, name='organization-request-list-create'),
    path('organizations/requests/<int:pk>/', request_detail, name='organization-request-detail'),
]
