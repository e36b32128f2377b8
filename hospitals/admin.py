from django.contrib import admin, messages
from django.db import transaction

from communication.services import notify_user

from .models import BloodCampaign, Organization, OrganizationMembership


class OrganizationMembershipInline(admin.TabularInline):
    model = OrganizationMembership
    extra = 0
    autocomplete_fields = ("user",)


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "org_type", "status", "city", "created_at")
    list_filter = ("status", "org_type", "city")
    search_fields = ("name", "email", "phone", "city")
    inlines = [OrganizationMembershipInline]
    actions = ["approve_org", "suspend_org"]

    def _set_memberships_active(self, org, active):
        for m in org.memberships.select_related("user").all():
            if m.is_active != active:
                m.is_active = active
                m.save(update_fields=["is_active"])
            if active and m.role == "ADMIN" and not m.user.is_hospital_admin:
                m.user.is_hospital_admin = True
                m.user.save(update_fields=["is_hospital_admin"])

    @transaction.atomic
    def _apply_status(self, org: Organization, status):
        org.status = status
        org.save(update_fields=["status"])
        self._set_memberships_active(org, status == "APPROVED")

        for m in org.memberships.filter(role="ADMIN"):
            notify_user(
                m.user_id,
                title=f"Organization {org.get_status_display().lower()}",
                body=f"Your organization '{org.name}' is now {org.get_status_display().lower()}.",
                level="SUCCESS" if status == "APPROVED" else "WARNING",
            )

    def approve_org(self, request, queryset):
        for org in queryset:
            self._apply_status(org, "APPROVED")
        self.message_user(request, f"{queryset.count()} organization(s) approved.", level=messages.SUCCESS)
    approve_org.short_description = "Approve selected organizations"

    def suspend_org(self, request, queryset):
        for org in queryset:
            self._apply_status(org, "SUSPENDED")
        self.message_user(request, f"{queryset.count()} organization(s) suspended.", level=messages.WARNING)
    suspend_org.short_description = "Suspend selected organizations"


@admin.register(OrganizationMembership)
class OrganizationMembershipAdmin(admin.ModelAdmin):
    list_display = ("organization", "user", "role", "is_active", "added_at")
    list_filter = ("role", "is_active")
    search_fields = ("organization__name", "user__username", "user__email")
    autocomplete_fields = ("organization", "user")


@admin.register(BloodCampaign)
class BloodCampaignAdmin(admin.ModelAdmin):
    list_display = ("title", "organization", "date", "start_time", "city", "target_units", "status")
    list_filter = ("status", "date", "city")
    search_fields = ("title", "venue_name", "organization__name", "city")
    ordering = ("-date",)
    autocomplete_fields = ("organization",)
