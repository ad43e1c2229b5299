"""Admin registration for cart models.

Support staff can clear carts and merge a guest cart into an account when a
shopper's automatic merge did not complete.
"""

from common.exceptions import EngineError
from django import forms
from django.contrib import admin, messages
from django.contrib.admin.helpers import ActionForm
from django.db import DatabaseError
from identity.types import Identity

from .models import Cart, CartLine
from .services import clear_cart, merge_guest_cart


class CartMergeActionForm(ActionForm):
    """Extra input for the merge action: the account receiving the guest cart."""

    account_id = forms.CharField(
        required=False,
        label="Target account id (guest carts only)",
        help_text="Used by 'Merge guest cart into account'.",
    )


class CartLineInline(admin.TabularInline):
    model = CartLine
    extra = 0
    fields = ("product", "quantity", "price_kind", "fixed_price", "tier_unit", "tier_price", "updated_at")
    readonly_fields = ("updated_at",)
    raw_id_fields = ("product",)


class OwnerTypeFilter(admin.SimpleListFilter):
    title = "owner type"
    parameter_name = "owner_type"

    def lookups(self, request, model_admin):
        return (
            ("account", "Account carts"),
            ("guest", "Guest carts"),
        )

    def queryset(self, request, queryset):
        value = self.value()
        if value == "account":
            return queryset.filter(owner_key__startswith="acct:")
        if value == "guest":
            return queryset.filter(owner_key__startswith="anon:")
        return queryset


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "owner_key", "updated_at", "created_at")
    list_filter = (OwnerTypeFilter,)
    search_fields = ("owner_key",)
    ordering = ("-updated_at",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [CartLineInline]
    action_form = CartMergeActionForm

    @admin.action(description="Clear cart")
    def action_clear_cart(self, request, queryset):
        successes = 0
        failures = 0
        for cart in queryset:
            try:
                clear_cart(identity=Identity.from_key(cart.owner_key))
                successes += 1
            except (EngineError, ValueError):
                failures += 1
        if successes:
            messages.success(request, f"Cleared {successes} cart(s).")
        if failures:
            messages.error(request, f"Failed to clear {failures} cart(s).")

    @admin.action(description="Merge guest cart into account")
    def action_merge_guest_cart(self, request, queryset):
        account_id = (request.POST.get("account_id") or "").strip()
        if not account_id:
            messages.error(request, "Please enter a target account id in the action form.")
            return

        successes = 0
        skipped = 0
        failures = 0
        for cart in queryset:
            if not cart.is_guest:
                skipped += 1
                continue
            try:
                merge_guest_cart(anonymous_token=Identity.from_key(cart.owner_key).value, account_id=account_id)
                successes += 1
            except (DatabaseError, EngineError):
                failures += 1
        if successes:
            messages.success(request, f"Merged {successes} guest cart(s) into account {account_id}.")
        if skipped:
            messages.info(request, f"Skipped {skipped} account cart(s); merge applies to guest carts only.")
        if failures:
            messages.error(request, f"Failed to merge {failures} cart(s).")

    actions = [
        "action_clear_cart",
        "action_merge_guest_cart",
    ]


@admin.register(CartLine)
class CartLineAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "product", "quantity", "price_kind", "fixed_price", "tier_unit", "tier_price")
    list_filter = ("price_kind",)
    search_fields = ("product__sku", "cart__owner_key")
    ordering = ("id",)
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("cart", "product")
