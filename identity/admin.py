"""Admin registration for browsing contexts.

Contexts that are signed in but still hold a guest token had their merge
fail; support can retry it from here.
"""

from django.contrib import admin, messages

from .models import BrowsingContext
from .selectors import pending_merge_contexts
from .services import merge_on_login


class PendingMergeFilter(admin.SimpleListFilter):
    title = "merge state"
    parameter_name = "merge_state"

    def lookups(self, request, model_admin):
        return (("pending", "Unmerged guest cart"),)

    def queryset(self, request, queryset):
        if self.value() == "pending":
            return queryset.filter(pk__in=pending_merge_contexts().values("pk"))
        return queryset


@admin.register(BrowsingContext)
class BrowsingContextAdmin(admin.ModelAdmin):
    list_display = ("id", "context_key", "anonymous_token", "account_id", "merging_account_id", "updated_at")
    list_filter = (PendingMergeFilter,)
    search_fields = ("context_key", "anonymous_token", "account_id")
    ordering = ("-updated_at",)
    readonly_fields = ("created_at", "updated_at", "merge_started_at")

    @admin.action(description="Retry guest cart merge")
    def action_retry_merge(self, request, queryset):
        merged = 0
        failed = 0
        skipped = 0
        for context in queryset:
            if not (context.account_id and context.anonymous_token):
                skipped += 1
                continue
            result = merge_on_login(context_key=context.context_key, account_id=context.account_id)
            if result.succeeded:
                merged += 1
            else:
                failed += 1
        if merged:
            messages.success(request, f"Merged {merged} guest cart(s).")
        if skipped:
            messages.info(request, f"Skipped {skipped} context(s) with nothing to merge.")
        if failed:
            messages.error(request, f"{failed} merge(s) did not complete.")

    actions = ["action_retry_merge"]
