"""Identity app models.

A `BrowsingContext` is the durable record behind one browser session: the
anonymous token it was issued and, once signed in, the account it belongs to.
"""

from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class BrowsingContext(TimeStampedModel):
    """Maps a browser session to its anonymous token and/or account.

    `merging_account_id` and `merge_started_at` form the merge re-entrancy
    guard; both are set while a guest cart merge is in flight.
    """

    context_key = models.CharField(max_length=128, unique=True)
    anonymous_token = models.CharField(max_length=96, null=True, blank=True, db_index=True)
    account_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    merging_account_id = models.CharField(max_length=64, null=True, blank=True)
    merge_started_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"BrowsingContext#{self.id} anon={self.anonymous_token} account={self.account_id}"

    @property
    def is_authenticated(self) -> bool:
        return bool(self.account_id)
