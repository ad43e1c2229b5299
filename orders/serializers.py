"""DRF serializers for checkout, orders and invoices."""

from decimal import Decimal

from rest_framework import serializers

from .models import CheckoutSession, Invoice, Order, OrderItem


class AddressSerializer(serializers.Serializer):
    """Delivery or billing address. Only `city` is required for pricing."""

    full_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    line1 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    line2 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=120)
    state = serializers.CharField(max_length=120, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    country = serializers.CharField(max_length=64, required=False, allow_blank=True)


class CheckoutRequestSerializer(serializers.Serializer):
    shipping_address = AddressSerializer()
    billing_address = AddressSerializer(required=False, allow_null=True)
    email = serializers.EmailField(required=False, allow_null=True, allow_blank=True)


class OrderItemSerializer(serializers.ModelSerializer):
    """API representation of an order line item with computed line_total."""

    line_total = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_title",
            "product_sku",
            "quantity",
            "price_kind",
            "tier_unit",
            "unit_price",
            "line_total",
        ]
        read_only_fields = fields

    def get_line_total(self, obj: OrderItem) -> Decimal:
        return obj.line_total


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "payment_status",
            "email",
            "payment_reference",
            "items",
            "subtotal",
            "shipping_fee",
            "discount",
            "total",
            "total_weight",
            "shipping_address",
            "billing_address",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields


class CheckoutSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CheckoutSession
        fields = ["id", "reference", "status", "payment_status", "total", "expires_at", "created_at"]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.number", read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "number",
            "order_number",
            "status",
            "subtotal",
            "shipping_fee",
            "discount",
            "total",
            "currency",
            "payment_reference",
            "issued_at",
            "due_at",
        ]
        read_only_fields = fields


class SettlementAccountSerializer(serializers.Serializer):
    bank_name = serializers.CharField()
    account_name = serializers.CharField()
    account_number = serializers.CharField()
    sort_code = serializers.CharField(allow_blank=True, required=False)


class SettlementSerializer(serializers.Serializer):
    """Bank-transfer instructions for a pending order."""

    currency = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    order_number = serializers.CharField()
    payment_reference = serializers.CharField()
    invoice_number = serializers.CharField(allow_null=True)
    due_at = serializers.DateTimeField(allow_null=True)
    accounts = SettlementAccountSerializer(many=True)
    company = serializers.DictField(child=serializers.CharField(allow_blank=True))
    support_email = serializers.EmailField()
    instructions = serializers.ListField(child=serializers.CharField())


class CheckoutResultSerializer(serializers.Serializer):
    outcome = serializers.CharField()
    checkout = CheckoutSessionSerializer()
    order = OrderSerializer()
    invoice = InvoiceSerializer()
    settlement = SettlementSerializer()
