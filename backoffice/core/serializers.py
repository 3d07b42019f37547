from rest_framework import serializers
from .models import User, Setting, AuditLog


class OrganizationSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    slug = serializers.CharField(read_only=True)


class UserSerializer(serializers.ModelSerializer):
    organization = OrganizationSummarySerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'firebase_uid', 'username', 'email', 'email_verified', 'display_name',
                  'first_name', 'last_name', 'phone', 'photo_url', 'provider_id', 'role',
                  'organization', 'is_active', 'is_staff', 'last_login_at', 'created_at', 'updated_at']
        read_only_fields = fields


class UserSyncSerializer(serializers.Serializer):
    """Payload sent by the frontend after a Firebase sign-in"""
    firebase_uid = serializers.CharField(max_length=128)
    email = serializers.EmailField()
    email_verified = serializers.BooleanField(required=False, default=False)
    display_name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    photo_url = serializers.URLField(max_length=500, required=False, allow_blank=True, allow_null=True)
    provider_id = serializers.CharField(max_length=50, required=False, default='firebase')


class UserProfileSerializer(serializers.ModelSerializer):
    """Fields a user may edit on their own profile"""

    class Meta:
        model = User
        fields = ['display_name', 'first_name', 'last_name', 'phone', 'photo_url']

    def validate_display_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError('Name is required', code='REQUIRED_FIELD')
        return value.strip()


class MemberUpdateSerializer(serializers.ModelSerializer):
    """Role and activation changes made by an organization admin"""

    class Meta:
        model = User
        fields = ['role', 'is_active']


class CustomTokenSerializer(serializers.Serializer):
    uid = serializers.CharField(max_length=128)
    claims = serializers.DictField(required=False, default=dict)


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']
        read_only_fields = ['updated_at']

    def validate_key(self, value):
        organization = self.context.get('organization')
        queryset = Setting.objects.filter(organization=organization, key=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if organization is not None and queryset.exists():
            raise serializers.ValidationError('A setting with this key already exists', code='SETTING_EXISTS')
        return value


class AuditLogUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'display_name']


class AuditLogSerializer(serializers.ModelSerializer):
    user = AuditLogUserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']
