"""Identity serializers."""

from cart.serializers import CartReadSerializer
from rest_framework import serializers


class IdentityReadSerializer(serializers.Serializer):
    owner = serializers.CharField(source="key")
    kind = serializers.CharField()
    value = serializers.CharField()


class MergeRequestSerializer(serializers.Serializer):
    """Optional token pin: a token that is no longer current makes the merge a no-op."""

    anonymous_token = serializers.CharField(max_length=96, required=False, allow_blank=True)


class MergeResultSerializer(serializers.Serializer):
    outcome = serializers.CharField()
    owner = IdentityReadSerializer(source="identity")
    cart = CartReadSerializer(allow_null=True)
