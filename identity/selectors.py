"""Selectors for read-only identity queries."""

from .models import BrowsingContext


def pending_merge_contexts():
    """Contexts signed in to an account that still hold an unmerged guest token."""

    return BrowsingContext.objects.filter(account_id__isnull=False, anonymous_token__isnull=False)
