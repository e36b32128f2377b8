from django.contrib import admin, messages

from . import services
from .exceptions import BloodServiceError
from .models import BloodRequest, Donation, InventoryLot, RescheduleRequest


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "patient_name",
        "blood_group",
        "donation_type",
        "units_required",
        "urgency",
        "city",
        "hospital_name",
        "status",
        "fulfilled_by",
        "created_at",
    )
    list_filter = ("status", "urgency", "blood_group", "donation_type", "city", "created_at")
    search_fields = (
        "patient_name",
        "contact_phone",
        "hospital_name",
        "city",
        "created_by__username",
        "created_by__email",
    )
    ordering = ("-created_at",)
    autocomplete_fields = ("created_by", "fulfilled_by")
    readonly_fields = ("created_at", "updated_at", "fulfilled_at")

    fieldsets = (
        ("Patient / Need", {
            "fields": ("patient_name", "blood_group", "donation_type", "units_required", "urgency", "required_by")
        }),
        ("Location / Hospital", {
            "fields": ("hospital_name", "hospital_address", "city")
        }),
        ("Contact", {
            "fields": ("contact_phone", "contact_email")
        }),
        ("Request State", {
            "fields": ("status", "fulfilled_by", "fulfilled_at", "created_at", "updated_at")
        }),
        ("Meta", {
            "fields": ("created_by",)
        }),
    )


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "donor",
        "full_name",
        "blood_group",
        "status",
        "event_date",
        "completed_on",
        "organization",
        "campaign",
        "request",
    )
    list_filter = ("status", "blood_group", "donation_type", "completed_on")
    search_fields = ("donor__username", "full_name", "email", "phone", "selected_organization")
    ordering = ("-created_at",)
    autocomplete_fields = ("donor", "campaign", "request", "organization")
    readonly_fields = ("status", "event_date", "completed_on", "inventory_lot", "stocked_on", "created_at", "updated_at")

    actions = ["mark_completed"]

    def mark_completed(self, request, queryset):
        done = 0
        for d in queryset:
            try:
                services.mark_donation_completed(request.user, d.pk)
                done += 1
            except BloodServiceError as exc:
                self.message_user(request, f"Donation #{d.pk}: {exc.message}", level=messages.WARNING)
        if done:
            self.message_user(request, f"{done} donation(s) marked completed.", level=messages.SUCCESS)

    mark_completed.short_description = "Mark selected donations as COMPLETED"


@admin.register(InventoryLot)
class InventoryLotAdmin(admin.ModelAdmin):
    list_display = ("id", "organization", "blood_group", "donation_type", "units", "expiration_date", "status")
    list_filter = ("status", "blood_group", "donation_type", "expiration_date")
    search_fields = ("organization__name", "blood_group")
    ordering = ("expiration_date", "id")
    autocomplete_fields = ("organization", "donation")

    actions = ["expire_past_date"]

    def expire_past_date(self, request, queryset):
        count = 0
        for org_id in queryset.values_list("organization_id", flat=True).distinct():
            count += services.expire_inventory(organization=org_id)
        self.message_user(request, f"{count} lot(s) marked expired.", level=messages.SUCCESS)

    expire_past_date.short_description = "Expire past-date lots for the selected organizations"


@admin.register(RescheduleRequest)
class RescheduleRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "donation", "requested_by", "organization", "old_date", "new_date", "new_time", "status", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("donation__id", "requested_by__username", "organization__name", "reason")
    ordering = ("-created_at",)
    autocomplete_fields = ("donation", "requested_by", "organization")
    readonly_fields = ("old_date", "old_time", "resolved_at", "created_at", "updated_at")

    actions = ["approve_selected", "reject_selected"]

    def _resolve(self, request, queryset, action, label):
        done = 0
        for r in queryset:
            try:
                services.resolve_reschedule(request.user, r.pk, action, rejection_reason="Rejected by admin.")
                done += 1
            except BloodServiceError as exc:
                self.message_user(request, f"Reschedule #{r.pk}: {exc.message}", level=messages.WARNING)
        if done:
            self.message_user(request, f"{done} reschedule request(s) {label}.", level=messages.SUCCESS)

    def approve_selected(self, request, queryset):
        self._resolve(request, queryset, "approve", "approved")
    approve_selected.short_description = "Approve selected reschedule requests"

    def reject_selected(self, request, queryset):
        self._resolve(request, queryset, "reject", "rejected")
    reject_selected.short_description = "Reject selected reschedule requests"
