"""DRF views for cart operations.

The owner is resolved per request: the authenticated account when present,
otherwise the anonymous token of the `X-Session-Id` browsing context.
"""

from common.api import error_response, ok
from common.exceptions import EngineError
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from identity.services import resolve_request_owner
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.views import APIView

from .selectors import get_cart_view
from .serializers import AddLineSerializer, CartReadSerializer, SetQuantitySerializer
from .services import add_line, clear_cart, remove_line, set_quantity

SESSION_PARAMETER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Browsing context key. Required for anonymous shoppers.",
    type=str,
)

CART_EXAMPLE = OpenApiExample(
    "Cart",
    value={
        "success": True,
        "data": {
            "owner": "anon:guest_1735689600000_a1b2c3d4e5",
            "source": "db",
            "lines": [
                {
                    "id": 10,
                    "product_id": 100,
                    "title": "Fresh tomatoes",
                    "sku": "TOM-001",
                    "quantity": 2,
                    "price_kind": "fixed",
                    "tier_unit": "",
                    "unit_price": "500.00",
                    "line_total": "1000.00",
                    "line_weight": "1.000",
                }
            ],
            "subtotal": "1000.00",
            "item_count": 2,
            "total_weight": "1.000",
        },
    },
    response_only=True,
)

ERROR_RESPONSE = inline_serializer(
    name="CartErrorResponse",
    fields={
        "success": rf_serializers.BooleanField(),
        "error": inline_serializer(
            name="CartErrorDetail",
            fields={"code": rf_serializers.CharField(), "detail": rf_serializers.CharField()},
        ),
    },
)


def _cart_response(view, *, code=status.HTTP_200_OK):
    return ok(CartReadSerializer(view).data, code=code)


class CartDetailView(APIView):
    """Return the current owner's cart."""

    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get cart",
        description="Returns the current owner's cart lines and recomputed totals.",
        parameters=[SESSION_PARAMETER],
        examples=[CART_EXAMPLE],
        responses={200: CartReadSerializer, 400: ERROR_RESPONSE, 503: ERROR_RESPONSE},
    )
    def get(self, request):
        try:
            identity = resolve_request_owner(request)
            view = get_cart_view(identity=identity)
        except EngineError as exc:
            return error_response(exc)
        return _cart_response(view)


class CartAddLineView(APIView):
    """Add a product to the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add line to cart",
        description=(
            "Adds a product at its fixed price, or at the named `tier_unit` for tier-priced products. "
            "Adding the same product and tier again increases the quantity."
        ),
        parameters=[SESSION_PARAMETER],
        request=AddLineSerializer,
        examples=[CART_EXAMPLE],
        responses={201: CartReadSerializer, 400: ERROR_RESPONSE, 404: ERROR_RESPONSE, 503: ERROR_RESPONSE},
    )
    def post(self, request):
        serializer = AddLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            identity = resolve_request_owner(request)
            view = add_line(identity=identity, **serializer.validated_data)
        except EngineError as exc:
            return error_response(exc)
        return _cart_response(view, code=status.HTTP_201_CREATED)


class CartLineView(APIView):
    """Update or remove a single cart line."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Set cart line quantity",
        description="Sets the line quantity. A quantity of 0 removes the line.",
        parameters=[SESSION_PARAMETER],
        request=SetQuantitySerializer,
        examples=[CART_EXAMPLE],
        responses={200: CartReadSerializer, 400: ERROR_RESPONSE, 404: ERROR_RESPONSE, 503: ERROR_RESPONSE},
    )
    def patch(self, request, line_id: int):
        serializer = SetQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            identity = resolve_request_owner(request)
            view = set_quantity(identity=identity, line_id=line_id, quantity=serializer.validated_data["quantity"])
        except EngineError as exc:
            return error_response(exc)
        return _cart_response(view)

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Remove cart line",
        parameters=[SESSION_PARAMETER],
        examples=[CART_EXAMPLE],
        responses={200: CartReadSerializer, 400: ERROR_RESPONSE, 503: ERROR_RESPONSE},
    )
    def delete(self, request, line_id: int):
        try:
            identity = resolve_request_owner(request)
            view = remove_line(identity=identity, line_id=line_id)
        except EngineError as exc:
            return error_response(exc)
        return _cart_response(view)


class CartClearView(APIView):
    """Remove every line from the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        parameters=[SESSION_PARAMETER],
        request=None,
        examples=[CART_EXAMPLE],
        responses={200: CartReadSerializer, 400: ERROR_RESPONSE, 503: ERROR_RESPONSE},
    )
    def post(self, request):
        try:
            identity = resolve_request_owner(request)
            view = clear_cart(identity=identity)
        except EngineError as exc:
            return error_response(exc)
        return _cart_response(view)
