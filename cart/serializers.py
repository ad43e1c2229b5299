"""Cart serializers for read and write operations."""

from rest_framework import serializers


class CartLineReadSerializer(serializers.Serializer):
    """Read serializer for a cart line view."""

    id = serializers.IntegerField()
    product_id = serializers.IntegerField()
    title = serializers.CharField()
    sku = serializers.CharField()
    quantity = serializers.IntegerField()
    price_kind = serializers.CharField()
    tier_unit = serializers.CharField(allow_blank=True)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    line_weight = serializers.DecimalField(max_digits=10, decimal_places=3)


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the cart summary and lines."""

    owner = serializers.CharField(source="owner_key")
    source = serializers.CharField()
    lines = CartLineReadSerializer(many=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    item_count = serializers.IntegerField()
    total_weight = serializers.DecimalField(max_digits=10, decimal_places=3)


class AddLineSerializer(serializers.Serializer):
    """Write serializer for adding a product to the cart."""

    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    tier_unit = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True)


class SetQuantitySerializer(serializers.Serializer):
    """Write serializer for a line's quantity; zero removes the line."""

    quantity = serializers.IntegerField(min_value=0)
