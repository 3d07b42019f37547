from rest_framework import serializers
from .models import Organization, OrganizationInvitation, OrganizationRequest


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ['id', 'name', 'slug', 'description', 'nit', 'phone_service', 'address',
                  'tax_regime', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'is_active', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError('Organization name must have at least 2 characters', code='INVALID_NAME')
        return value


class MemberSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    firebase_uid = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    display_name = serializers.CharField(read_only=True)
    photo_url = serializers.CharField(read_only=True)
    role = serializers.CharField(read_only=True)
    is_active = serializers.BooleanField(read_only=True)
    last_login_at = serializers.DateTimeField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


class OrganizationInvitationSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True)
    invited_by_email = serializers.EmailField(source='invited_by.email', read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = OrganizationInvitation
        fields = ['id', 'organization', 'organization_name', 'invited_email', 'invited_by', 'invited_by_email',
                  'token', 'assigned_role', 'status', 'message', 'expires_at', 'is_expired',
                  'accepted_by', 'accepted_at', 'created_at']
        read_only_fields = ['organization', 'invited_by', 'token', 'status', 'expires_at',
                            'accepted_by', 'accepted_at', 'created_at']

    def validate_invited_email(self, value):
        return value.strip().lower()


class InvitationResponseSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['accept', 'reject'])


class OrganizationRequestSerializer(serializers.ModelSerializer):
    requested_by_email = serializers.EmailField(source='requested_by.email', read_only=True)

    class Meta:
        model = OrganizationRequest
        fields = ['id', 'requested_by', 'requested_by_email', 'organization_name', 'organization_nit',
                  'organization_phone', 'organization_address', 'organization_tax_regime',
                  'business_justification', 'contact_name', 'contact_position', 'contact_phone',
                  'status', 'priority', 'reviewed_by', 'reviewed_at', 'review_comments',
                  'created_organization', 'created_at', 'updated_at']
        read_only_fields = ['requested_by', 'status', 'reviewed_by', 'reviewed_at', 'review_comments',
                            'created_organization', 'created_at', 'updated_at']

    def validate_business_justification(self, value):
        if len(value.strip()) < 20:
            raise serializers.ValidationError('Justification must have at least 20 characters', code='INVALID_JUSTIFICATION')
        return value.strip()


class OrganizationRequestReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['under_review', 'approved', 'rejected'])
    review_comments = serializers.CharField(required=False, allow_blank=True, default='')
    priority = serializers.ChoiceField(choices=OrganizationRequest.PRIORITY_CHOICES, required=False)
