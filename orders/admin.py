from common.exceptions import EngineError
from django.contrib import admin, messages

from .models import CheckoutSession, Invoice, Order, OrderItem
from .services import confirm_payment
from .sweeper import REASON_EXPIRED, cancel_triple


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "product_title", "product_sku", "quantity", "price_kind", "tier_unit", "unit_price")
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "owner_key", "status", "payment_status", "total", "email", "created_at")
    list_filter = ("status", "payment_status", "created_at")
    search_fields = ("number", "email", "owner_key", "payment_reference")
    date_hierarchy = "created_at"
    readonly_fields = ("created_at", "updated_at", "paid_at")
    inlines = [OrderItemInline]

    @admin.action(description="Confirm bank transfer received")
    def action_confirm_payment(self, request, queryset):
        confirmed = 0
        for order in queryset:
            try:
                confirm_payment(order)
                confirmed += 1
            except EngineError as exc:
                messages.error(request, f"{order.number}: {exc.detail}")
        if confirmed:
            messages.success(request, f"Confirmed payment for {confirmed} order(s).")

    @admin.action(description="Cancel order with its checkout and invoice")
    def action_cancel(self, request, queryset):
        cancelled = sum(1 for order in queryset if cancel_triple(order, reason=REASON_EXPIRED))
        skipped = queryset.count() - cancelled
        if cancelled:
            messages.success(request, f"Cancelled {cancelled} order(s).")
        if skipped:
            messages.info(request, f"Skipped {skipped} paid or fulfilled order(s).")

    actions = ["action_confirm_payment", "action_cancel"]


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    list_display = ("id", "reference", "owner_key", "order", "status", "payment_status", "total", "expires_at")
    list_filter = ("status", "payment_status")
    search_fields = ("reference", "owner_key", "order__number")
    raw_id_fields = ("order",)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "order", "status", "total", "currency", "issued_at", "due_at")
    list_filter = ("status", "currency")
    search_fields = ("number", "payment_reference", "order__number")
    date_hierarchy = "issued_at"
    raw_id_fields = ("order",)
