"""Error taxonomy shared by the identity, cart and orders services.

Views translate these into `{"success": false, "error": {...}}` responses via
`common.api.error_response`.
"""


class EngineError(Exception):
    """Base class for service-level failures that callers can act on."""

    code = "error"

    def __init__(self, detail: str = "", *, code: str | None = None):
        super().__init__(detail)
        self.detail = detail or self.__class__.__doc__ or ""
        if code:
            self.code = code


class ValidationError(EngineError):
    """Bad cart, address or price. Never retried automatically."""

    code = "validation_error"


class InvalidCart(ValidationError):
    """Cart is empty or references products that cannot be shipped."""

    code = "invalid_cart"


class InvalidAddress(ValidationError):
    """Shipping address is missing or incomplete."""

    code = "invalid_address"


class UnresolvablePrice(ValidationError):
    """A cart line has no usable price, or carries more than one."""

    code = "unresolvable_price"


class NotFound(EngineError):
    """Referenced record does not exist for this owner."""

    code = "not_found"


class TransientStorageError(EngineError):
    """Storage was unavailable. Safe to retry the whole call."""

    code = "transient_storage"


class ConflictError(EngineError):
    """A concurrent submission for the same owner won the uniqueness race."""

    code = "conflict"


class MergeFailure(EngineError):
    """Guest cart merge did not confirm. The anonymous token is kept for retry."""

    code = "merge_failed"


class CheckoutFailed(EngineError):
    """Writing the checkout/order/invoice records failed and was cleaned up."""

    code = "checkout_failed"
