from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import CustomUser, UserProfile

class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    verbose_name_plural = 'Donor Profile'
    readonly_fields = ('last_donation_at',)

class CustomUserAdmin(UserAdmin):
    inlines = (UserProfileInline,)

    # What you see in the User List
    list_display = ('username', 'email', 'is_donor', 'is_recipient', 'is_hospital_admin', 'is_staff')

    # Filter sidebar
    list_filter = ('is_donor', 'is_recipient', 'is_hospital_admin', 'is_staff')

    # Add custom fields to the "Edit User" page
    fieldsets = UserAdmin.fieldsets + (
        ('Donation Roles', {'fields': ('is_donor', 'is_recipient', 'is_hospital_admin', 'phone_number')}),
    )

admin.site.register(CustomUser, CustomUserAdmin)
