from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .serializers import (
    CategorySerializer,
    CategoryRequestSerializer,
    ProductSerializer,
    ProductRequestSerializer,
)
from .services import CategoryService, ProductService


class PublicReadMixin:
    """
    Catalog reads are public; writes need an authenticated user and are
    role-checked again inside the service.
    """
    read_actions = ("list", "retrieve")

    def get_permissions(self):
        if self.action in self.read_actions:
            return [AllowAny()]
        return [IsAuthenticated()]


class CategoryViewSet(PublicReadMixin, viewsets.ViewSet):

    def list(self, request):
        categories = CategoryService.list_categories()
        return Response(CategorySerializer(categories, many=True).data)

    def retrieve(self, request, pk=None):
        category = CategoryService.get_category(pk)
        return Response(CategorySerializer(category).data)

    def create(self, request):
        serializer = CategoryRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = CategoryService.create_category(
            acting_role=request.user.role, **serializer.validated_data
        )
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        serializer = CategoryRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = CategoryService.update_category(
            pk, acting_role=request.user.role, **serializer.validated_data
        )
        return Response(CategorySerializer(category).data)

    def destroy(self, request, pk=None):
        CategoryService.delete_category(pk, acting_role=request.user.role)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductViewSet(PublicReadMixin, viewsets.ViewSet):
    """
    Public product list. Stock is shown so clients can grey out sold-out items.
    """
    read_actions = ("list", "retrieve", "by_category")

    def list(self, request):
        products = ProductService.list_products()
        return Response(ProductSerializer(products, many=True).data)

    def retrieve(self, request, pk=None):
        product = ProductService.get_product(pk)
        return Response(ProductSerializer(product).data)

    def create(self, request):
        serializer = ProductRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = ProductService.create_product(
            acting_role=request.user.role, **serializer.validated_data
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        serializer = ProductRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = ProductService.update_product(
            pk, acting_role=request.user.role, **serializer.validated_data
        )
        return Response(ProductSerializer(product).data)

    def destroy(self, request, pk=None):
        ProductService.delete_product(pk, acting_role=request.user.role)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], url_path=r'category/(?P<category_id>[^/.]+)')
    def by_category(self, request, category_id=None):
        products = ProductService.list_products_by_category(category_id)
        return Response(ProductSerializer(products, many=True).data)
