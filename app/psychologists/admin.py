# psychologists/admin.py
from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from django.utils import timezone

from .models import Psychologist, AvailabilityRule, CalendarBlock, PsychologistPricing


class AvailabilityRuleInline(admin.TabularInline):
    """Active and superseded rules, newest first"""
    model = AvailabilityRule
    extra = 0
    fields = ['day_of_week', 'start_time', 'end_time', 'is_exception', 'specific_date', 'superseded_at']
    readonly_fields = ['superseded_at']
    ordering = ['-created_at']


class PsychologistPricingInline(admin.StackedInline):
    model = PsychologistPricing
    extra = 0
    fields = ['session_price', 'package_4_price', 'package_8_price', 'session_duration_minutes', 'currency']


@admin.register(Psychologist)
class PsychologistAdmin(admin.ModelAdmin):
    """Admin configuration for Psychologist model"""

    list_display = [
        'user_email',
        'full_name',
        'license_number',
        'years_of_experience',
        'verification_status',
        'active_rules_count',
        'created_at'
    ]

    list_filter = ['verification_status', 'created_at']

    search_fields = ['user__email', 'first_name', 'last_name', 'license_number']

    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        (_('Personal Information'), {
            'fields': ('user', 'first_name', 'last_name')
        }),
        (_('Professional Credentials'), {
            'fields': ('license_number', 'years_of_experience')
        }),
        (_('Verification'), {
            'fields': ('verification_status',)
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    inlines = [PsychologistPricingInline, AvailabilityRuleInline]

    actions = ['approve_verification', 'reject_verification']

    def user_email(self, obj):
        """Display user email"""
        return obj.user.email
    user_email.short_description = _('Email')
    user_email.admin_order_field = 'user__email'

    def full_name(self, obj):
        return obj.full_name or '-'
    full_name.short_description = _('Full Name')

    def active_rules_count(self, obj):
        return obj.availability_rules.filter(superseded_at__isnull=True).count()
    active_rules_count.short_description = _('Active Rules')

    def approve_verification(self, request, queryset):
        updated = 0
        for psychologist in queryset:
            psychologist.verification_status = 'Approved'
            psychologist.save()
            updated += 1
        self.message_user(request, _('%(count)d psychologist(s) approved.') % {'count': updated})
    approve_verification.short_description = _('Approve verification')

    def reject_verification(self, request, queryset):
        updated = 0
        for psychologist in queryset:
            psychologist.verification_status = 'Rejected'
            psychologist.save()
            updated += 1
        self.message_user(request, _('%(count)d psychologist(s) rejected.') % {'count': updated})
    reject_verification.short_description = _('Reject verification')


@admin.register(AvailabilityRule)
class AvailabilityRuleAdmin(admin.ModelAdmin):
    list_display = ['psychologist', 'day_of_week', 'start_time', 'end_time', 'is_exception', 'specific_date', 'superseded_at']
    list_filter = ['is_exception', 'day_of_week']
    search_fields = ['psychologist__user__email']
    actions = ['supersede_rules']

    def supersede_rules(self, request, queryset):
        now = timezone.now()
        count = 0
        for rule in queryset.filter(superseded_at__isnull=True):
            rule.supersede(when=now)
            count += 1
        self.message_user(request, _('%(count)d rule(s) superseded.') % {'count': count})
    supersede_rules.short_description = _('Supersede selected rules')

    def has_delete_permission(self, request, obj=None):
        # Rules are superseded, never deleted
        return False


@admin.register(CalendarBlock)
class CalendarBlockAdmin(admin.ModelAdmin):
    list_display = ['psychologist', 'block_type', 'is_recurring', 'day_of_week', 'specific_date', 'start_time', 'end_time', 'label']
    list_filter = ['block_type', 'is_recurring']
    search_fields = ['psychologist__user__email', 'label']
