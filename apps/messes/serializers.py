from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from .models import Mess, MessMembership, JoinRequest


class MessSerializer(serializers.ModelSerializer):
    """Mess summary returned from create and search."""

    admin = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Mess
        fields = [
            'id',
            'name',
            'address',
            'identifier_code',
            'admin',
            'is_active',
            'created_at',
        ]
        read_only_fields = fields


class MessMemberSerializer(serializers.ModelSerializer):
    """Active member entry of a mess."""

    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = MessMembership
        fields = ['user', 'joined_at']
        read_only_fields = fields


class MessDetailSerializer(MessSerializer):
    """Mess with its active members, for the current member's view."""

    members = serializers.SerializerMethodField()
    member_count = serializers.SerializerMethodField()

    class Meta(MessSerializer.Meta):
        fields = MessSerializer.Meta.fields + ['members', 'member_count', 'updated_at']
        read_only_fields = fields

    def get_members(self, obj):
        memberships = obj.active_memberships().order_by('joined_at')
        return MessMemberSerializer(memberships, many=True).data

    def get_member_count(self, obj):
        return obj.memberships.filter(is_active=True).count()


class JoinRequestSerializer(serializers.ModelSerializer):
    """Join request with requester info, as shown to the mess admin."""

    request_id = serializers.UUIDField(source='id', read_only=True)
    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = JoinRequest
        fields = ['request_id', 'user', 'status', 'requested_at', 'processed_at']
        read_only_fields = fields


class MessCreateSerializer(serializers.Serializer):
    """Serializer for creating a mess."""

    name = serializers.CharField(max_length=200)
    address = serializers.CharField(max_length=500)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name cannot be blank')
        return value

    def validate_address(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Address cannot be blank')
        return value


class JoinMessSerializer(serializers.Serializer):
    """Serializer for joining (or requesting to join) a mess."""

    mess_id = serializers.UUIDField()


class RequestActionSerializer(serializers.Serializer):
    """Serializer for accepting or rejecting a join request."""

    request_id = serializers.UUIDField()


class MessSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = Mess
        fields = ['id', 'name', 'address', 'identifier_code']
        read_only_fields = fields


class RequestStatusSerializer(serializers.Serializer):
    """Result of ``MembershipService.check_request_status``."""

    status = serializers.ChoiceField(choices=['accepted', 'pending', 'rejected', 'none'])
    message = serializers.CharField()
    mess = MessSnapshotSerializer(allow_null=True)
    request_id = serializers.SerializerMethodField()
    requested_at = serializers.SerializerMethodField()

    def get_request_id(self, obj):
        join_request = obj.get('request')
        return str(join_request.id) if join_request is not None else None

    def get_requested_at(self, obj):
        join_request = obj.get('request')
        return join_request.requested_at if join_request is not None else None
