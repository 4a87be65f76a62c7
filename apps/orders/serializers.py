from rest_framework import serializers
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source='product.id', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['product_id', 'product_name', 'quantity', 'unit_price', 'line_total']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    Read projection of an order: owner, total, status and priced lines.
    """
    items = OrderItemSerializer(many=True, read_only=True)
    user_id = serializers.UUIDField(source='user.id', read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'user_id', 'user_email', 'total_amount', 'status',
            'items', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class OrderLineRequestSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField()


class OrderRequestSerializer(serializers.Serializer):
    # Emptiness is a business rule checked by OrderService
    items = OrderLineRequestSerializer(many=True, allow_empty=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
