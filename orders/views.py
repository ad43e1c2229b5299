"""Orders API endpoints: checkout submission, the current order and its invoice."""

from cart.selectors import get_cart_view
from common.api import error_response, ok
from common.choices import CheckoutOutcome
from common.exceptions import EngineError, NotFound
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from identity.services import resolve_request_owner
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.views import APIView

from .models import Order
from .selectors import get_checkout_for_order, get_current_order, get_invoice_for_order
from .serializers import (
    CheckoutRequestSerializer,
    CheckoutResultSerializer,
    CheckoutSessionSerializer,
    InvoiceSerializer,
    OrderSerializer,
    SettlementSerializer,
)
from .services import confirm_payment, submit_checkout
from .settlement import settlement_instructions

SESSION_PARAMETER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Browsing context key. Required for anonymous shoppers.",
    type=str,
)


class CheckoutView(APIView):
    """Submit the current cart for checkout.

    Re-submitting while an order is pending returns that same order.
    """

    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Submit checkout",
        description=(
            "Prices the owner's cart and creates a pending order with its checkout session and invoice, "
            "or returns the existing pending order. An order older than 24 hours, or a failed one, "
            "is cancelled and replaced."
        ),
        parameters=[SESSION_PARAMETER],
        request=CheckoutRequestSerializer,
        responses={200: CheckoutResultSerializer, 201: CheckoutResultSerializer},
        examples=[
            OpenApiExample(
                "Checkout request",
                value={
                    "shipping_address": {"full_name": "Ada Obi", "line1": "12 Marina", "city": "Lagos", "state": "Lagos"},
                    "email": "ada@example.com",
                },
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        billing = data.get("billing_address")
        email = data.get("email") or None
        if not email and request.user.is_authenticated:
            email = request.user.email or None

        try:
            identity = resolve_request_owner(request)
            result = submit_checkout(
                identity=identity,
                cart_snapshot=get_cart_view(identity=identity),
                shipping_address=dict(data["shipping_address"]),
                billing_address=dict(billing) if billing else None,
                email=email,
            )
        except EngineError as exc:
            return error_response(exc)

        code = status.HTTP_200_OK if result.outcome == CheckoutOutcome.EXISTING else status.HTTP_201_CREATED
        return ok(CheckoutResultSerializer(result).data, code=code)


class CurrentOrderView(APIView):
    """The owner's pending order, if any, with payment instructions."""

    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Get current order",
        parameters=[SESSION_PARAMETER],
        responses={200: OrderSerializer},
    )
    def get(self, request):
        try:
            identity = resolve_request_owner(request)
            order = get_current_order(identity=identity)
            if order is None:
                raise NotFound("No pending order")
        except EngineError as exc:
            return error_response(exc)

        invoice = get_invoice_for_order(order=order)
        checkout = get_checkout_for_order(order=order)
        return ok(
            {
                "order": OrderSerializer(order).data,
                "checkout": CheckoutSessionSerializer(checkout).data if checkout else None,
                "settlement": SettlementSerializer(settlement_instructions(order=order, invoice=invoice)).data,
            }
        )


class CurrentInvoiceView(APIView):
    """The invoice of the owner's pending order."""

    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Get current order invoice",
        parameters=[SESSION_PARAMETER],
        responses={200: InvoiceSerializer},
    )
    def get(self, request):
        try:
            identity = resolve_request_owner(request)
            order = get_current_order(identity=identity)
            invoice = get_invoice_for_order(order=order) if order else None
            if invoice is None:
                raise NotFound("No invoice for a pending order")
        except EngineError as exc:
            return error_response(exc)
        return ok(InvoiceSerializer(invoice).data)


class ConfirmPaymentView(APIView):
    """Staff confirmation that a bank transfer for an order was received."""

    permission_classes = [IsAdminUser]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Confirm order payment",
        description="Marks the order confirmed and paid and its invoice paid. Repeating the call is harmless.",
        request=None,
        responses={200: OrderSerializer},
    )
    def post(self, request, order_id: int):
        try:
            order = Order.objects.filter(pk=order_id).first()
            if order is None:
                raise NotFound("Order not found")
            order = confirm_payment(order)
        except EngineError as exc:
            return error_response(exc)
        return ok(OrderSerializer(order).data, message="Payment confirmed")
