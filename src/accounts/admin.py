from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import BoxOfficeUser


@admin.register(BoxOfficeUser)
class BoxOfficeUserAdmin(UserAdmin):  # type: ignore[type-arg]
    list_display = ["username", "email", "role", "stripe_onboarding_completed", "is_active"]
    list_filter = ["role", "stripe_onboarding_completed", "is_active", "is_staff"]
    search_fields = ["username", "email", "organization_name", "stripe_account_id"]
    fieldsets = (
        *UserAdmin.fieldsets,  # type: ignore[misc]
        ("Organizer", {"fields": ("role", "organization_name")}),
        (
            "Payouts",
            {"fields": ("stripe_account_id", "stripe_account_type", "stripe_onboarding_completed", "default_currency")},
        ),
    )
