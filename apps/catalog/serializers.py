# apps/catalog/serializers.py
from rest_framework import serializers
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "description", "created_at", "updated_at"]
        read_only_fields = fields


class CategoryRequestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, allow_blank=True)
    description = serializers.CharField(default=None, allow_null=True, allow_blank=True)


class ProductSerializer(serializers.ModelSerializer):
    category_id = serializers.UUIDField(source="category.id", read_only=True)
    category_name = serializers.CharField(source="category.name", read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "stock",
            "category_id",
            "category_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProductRequestSerializer(serializers.Serializer):
    """
    Shape-only validation; business rules (price > 0, stock >= 0,
    category exists) are enforced by ProductService.
    """
    name = serializers.CharField(max_length=255, allow_blank=True)
    description = serializers.CharField(default=None, allow_null=True, allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    stock = serializers.IntegerField()
    category_id = serializers.UUIDField()
