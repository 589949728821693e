# ==========================================
# apps/messes/admin.py
# ==========================================

from django.contrib import admin
from apps.messes.models import Mess, MessMembership, JoinRequest, Member


class MessMembershipInline(admin.TabularInline):
    """Inline admin for the mess member list."""
    model = MessMembership
    extra = 0
    fields = ['user', 'joined_at', 'is_active']
    readonly_fields = ['user', 'joined_at', 'is_active']
    can_delete = False


@admin.register(Mess)
class MessAdmin(admin.ModelAdmin):
    """Admin interface for Messes."""

    list_display = [
        'name',
        'admin',
        'member_count',
        'identifier_code',
        'is_active',
        'created_at'
    ]
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'address', 'admin__email', 'identifier_code']
    readonly_fields = ['identifier_code', 'admin', 'created_at', 'updated_at']
    inlines = [MessMembershipInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'address', 'admin', 'is_active')
        }),
        ('Identifier', {
            'fields': ('identifier_code',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of active members."""
        return obj.memberships.filter(is_active=True).count()
    member_count.short_description = 'Members'

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('admin')


@admin.register(JoinRequest)
class JoinRequestAdmin(admin.ModelAdmin):
    """Admin interface for Join Requests (read-only history)."""

    list_display = ['user', 'mess', 'status', 'requested_at', 'processed_at', 'processed_by']
    list_filter = ['status', 'requested_at']
    search_fields = ['user__email', 'mess__name', 'mess__identifier_code']
    readonly_fields = ['mess', 'user', 'status', 'requested_at', 'processed_at', 'processed_by']
    date_hierarchy = 'requested_at'
    ordering = ['-requested_at']

    def has_add_permission(self, request):
        return False

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'mess', 'processed_by')


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    """Admin interface for the member projection."""

    list_display = ['name', 'mess', 'user', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['name', 'user__email', 'mess__name']
    readonly_fields = ['user', 'mess', 'name', 'is_active', 'created_at', 'updated_at']
    ordering = ['mess', 'name']

    def has_add_permission(self, request):
        return False

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'mess')
