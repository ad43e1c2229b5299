"""Identity services: owner resolution, guest cart merge on login, sign-out.

The merge guard is a conditional UPDATE on the browsing context row, so two
concurrent login triggers for the same context cannot both run the merge.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from common.api import session_key_from
from common.choices import MergeOutcome
from common.exceptions import EngineError, MergeFailure, TransientStorageError, ValidationError
from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from .models import BrowsingContext
from .types import Identity

logger = logging.getLogger("freshcart.identity")

SUCCESSFUL_MERGES = {MergeOutcome.NO_GUEST_ITEMS, MergeOutcome.CONVERTED, MergeOutcome.MERGED}


@dataclass
class MergeResult:
    """Outcome of `merge_on_login`.

    `identity` is always the account identity, even when the merge failed,
    so callers carry on as signed in. `cart` is the account's cart after the
    attempt; on failure it is the account's existing cart.
    """

    outcome: str
    identity: Identity
    cart: object = None
    error: Optional[MergeFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in SUCCESSFUL_MERGES

    @property
    def message(self) -> str:
        return MergeOutcome(self.outcome).label


def mint_anonymous_token() -> str:
    return f"guest_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


@transaction.atomic
def resolve_owner(*, context_key: str, account_id=None) -> Identity:
    """Decide which identity owns the cart for this browsing context.

    1. A present account id is authoritative. It is recorded on the context,
       but the context's anonymous token is left alone so it can still be
       merged.
    2. Otherwise the context's existing anonymous token.
    3. Otherwise a freshly minted token, persisted before returning.
    """

    if not context_key:
        raise ValidationError("X-Session-Id header is required", code="missing_session")
    context, _ = BrowsingContext.objects.select_for_update().get_or_create(context_key=context_key)

    if account_id:
        account_id = str(account_id)
        if context.account_id != account_id:
            context.account_id = account_id
            context.save(update_fields=["account_id", "updated_at"])
        return Identity.account(account_id)

    if context.anonymous_token:
        return Identity.anonymous(context.anonymous_token)

    context.anonymous_token = mint_anonymous_token()
    context.save(update_fields=["anonymous_token", "updated_at"])
    logger.info(
        "identity.token_minted",
        extra={"event": "identity.token_minted", "context_id": context.id, "owner_key": f"anon:{context.anonymous_token}"},
    )
    return Identity.anonymous(context.anonymous_token)


def resolve_request_owner(request) -> Identity:
    """Resolve the owner for an API request.

    The account id is the authenticated user's primary key. An authenticated
    request without a session header still resolves to its account.
    """

    user = getattr(request, "user", None)
    account_id = user.pk if user is not None and user.is_authenticated else None
    context_key = session_key_from(request)
    if not context_key and account_id:
        return Identity.account(account_id)
    return resolve_owner(context_key=context_key, account_id=account_id)


def _claim_merge_guard(*, context: BrowsingContext, token: str, account_id: str) -> bool:
    """Mark the merge as in flight. Returns False when another merge holds the guard."""

    now = timezone.now()
    abandoned_before = now - timedelta(seconds=settings.MERGE_GUARD_TIMEOUT_SECONDS)
    claimed = (
        BrowsingContext.objects.filter(pk=context.pk, anonymous_token=token)
        .filter(Q(merging_account_id__isnull=True) | Q(merge_started_at__lt=abandoned_before))
        .update(merging_account_id=account_id, merge_started_at=now, account_id=account_id, updated_at=now)
    )
    return claimed == 1


def _release_merge_guard(*, context: BrowsingContext, account_id: str, clear_token: str | None = None) -> None:
    updates = {"merging_account_id": None, "merge_started_at": None, "updated_at": timezone.now()}
    qs = BrowsingContext.objects.filter(pk=context.pk, merging_account_id=account_id)
    if clear_token:
        # Compare-and-clear: a token replaced meanwhile (e.g. sign-out) is left alone
        qs.filter(anonymous_token=clear_token).update(anonymous_token=None, **updates)
    qs.update(**updates)


def merge_on_login(
    *,
    context_key: str,
    account_id,
    anonymous_token: str | None = None,
    merger: Callable | None = None,
) -> MergeResult:
    """Move the context's guest cart into the account cart, exactly once.

    The anonymous token is captured before anything is written. Ownership
    switches to the account for new operations as soon as the merge starts;
    the token is cleared only after the merger confirms. A failed merge
    keeps the token so the merge can be retried, and is reported in the
    result rather than raised.

    `anonymous_token` pins the token the caller believes is current; a stale
    one makes the call a no-op. `merger` defaults to
    `cart.services.merge_guest_cart`.
    """

    from cart.selectors import get_cart_view

    if merger is None:
        from cart.services import merge_guest_cart as merger

    if not context_key:
        raise ValidationError("X-Session-Id header is required", code="missing_session")
    account_id = str(account_id)
    account = Identity.account(account_id)
    context, _ = BrowsingContext.objects.get_or_create(context_key=context_key)
    token = anonymous_token or context.anonymous_token
    log_extra = {"context_id": context.id, "account_id": account_id, "anonymous_token": token}

    if not token:
        if context.account_id != account_id:
            BrowsingContext.objects.filter(pk=context.pk).update(account_id=account_id, updated_at=timezone.now())
        return MergeResult(MergeOutcome.NO_GUEST_ITEMS, account, cart=get_cart_view(identity=account))

    if token != context.anonymous_token:
        logger.info("identity.merge_stale", extra={"event": "identity.merge_stale", **log_extra})
        return MergeResult(MergeOutcome.STALE, account, cart=get_cart_view(identity=account))

    if not _claim_merge_guard(context=context, token=token, account_id=account_id):
        context.refresh_from_db()
        outcome = MergeOutcome.IN_FLIGHT if context.anonymous_token == token else MergeOutcome.STALE
        logger.info("identity.merge_skipped", extra={"event": "identity.merge_skipped", "outcome": outcome, **log_extra})
        return MergeResult(outcome, account, cart=get_cart_view(identity=account))

    merged = False
    try:
        outcome = merger(anonymous_token=token, account_id=account_id)
        merged = True
    except (DatabaseError, EngineError) as exc:
        logger.warning(
            "identity.merge_failed",
            extra={"event": "identity.merge_failed", "error": str(exc), **log_extra},
        )
        error = exc if isinstance(exc, MergeFailure) else MergeFailure(f"Guest cart merge did not complete: {exc}")
        try:
            cart = get_cart_view(identity=account)
        except (DatabaseError, TransientStorageError):
            cart = None
        return MergeResult(MergeOutcome.FAILED, account, cart=cart, error=error)
    finally:
        if not merged:
            # Keep the token but free the guard so the merge can be retried at once
            _release_merge_guard(context=context, account_id=account_id)

    _release_merge_guard(context=context, account_id=account_id, clear_token=token)
    logger.info("identity.merged", extra={"event": "identity.merged", "outcome": outcome, **log_extra})
    return MergeResult(outcome, account, cart=get_cart_view(identity=account))


@transaction.atomic
def sign_out(*, context_key: str) -> Identity:
    """Drop the account from the context and start over with a fresh guest token."""

    if not context_key:
        raise ValidationError("X-Session-Id header is required", code="missing_session")
    context, _ = BrowsingContext.objects.select_for_update().get_or_create(context_key=context_key)
    previous_account = context.account_id
    context.account_id = None
    context.merging_account_id = None
    context.merge_started_at = None
    context.anonymous_token = mint_anonymous_token()
    context.save()
    logger.info(
        "identity.signed_out",
        extra={"event": "identity.signed_out", "context_id": context.id, "account_id": previous_account},
    )
    return Identity.anonymous(context.anonymous_token)
