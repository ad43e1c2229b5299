"""Admin registration for catalog models."""

from django.contrib import admin

from .models import PriceTier, Product


class PriceTierInline(admin.TabularInline):
    model = PriceTier
    extra = 0
    fields = ("unit", "price", "sort_order")
    ordering = ("sort_order",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "sku", "status", "weight_kg", "has_fixed_price", "fixed_price")
    search_fields = ("title", "slug", "sku")
    list_filter = ("status", "has_fixed_price")
    prepopulated_fields = {"slug": ("title",)}
    inlines = [PriceTierInline]
