from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import OrderSerializer, OrderRequestSerializer, OrderStatusSerializer
from .services import OrderService


class OrderViewSet(viewsets.ViewSet):
    """
    HTTP surface of the order workflow. The view only resolves the acting
    identity from the JWT-authenticated user; every rule lives in OrderService.
    """
    permission_classes = [IsAuthenticated]

    def create(self, request):
        serializer = OrderRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        items = [
            (line['product_id'], line['quantity'])
            for line in serializer.validated_data['items']
        ]
        order = OrderService.place_order(
            acting_user_id=request.user.id,
            acting_role=request.user.role,
            items=items,
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        order = OrderService.get_order(pk, request.user.id, request.user.role)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['patch'], url_path='status')
    def update_status(self, request, pk=None):
        # Accepts ?status=CONFIRMED or a {"status": "CONFIRMED"} body
        if "status" in request.query_params:
            data = {"status": request.query_params["status"]}
        else:
            data = request.data
        serializer = OrderStatusSerializer(data=data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.update_order_status(
            pk, serializer.validated_data['status'], request.user.role
        )
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=['get'], url_path=r'user/(?P<user_id>[^/.]+)')
    def for_user(self, request, user_id=None):
        orders = OrderService.list_orders_for_user(user_id, request.user.id, request.user.role)
        return Response(OrderSerializer(orders, many=True).data)

    @action(detail=False, methods=['get'], url_path='my/orders')
    def mine(self, request):
        orders = OrderService.list_orders_for_user(request.user.id, request.user.id, request.user.role)
        return Response(OrderSerializer(orders, many=True).data)

    @action(detail=False, methods=['get'], url_path='all')
    def all_orders(self, request):
        orders = OrderService.list_all_orders(
            request.user.role, status=request.query_params.get('status')
        )
        return Response(OrderSerializer(orders, many=True).data)
