from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from apps.utils.throttle import BurstRateThrottle

from .services import AccountService
from .serializers import RegisterSerializer, LoginSerializer, UserSerializer


class RegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [BurstRateThrottle]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AccountService.register(**serializer.validated_data)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [BurstRateThrottle]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AccountService.login(**serializer.validated_data)
        user = result['user']
        return Response({
            "token": result['token'],
            "type": result['type'],
            "id": str(user.id),
            "email": user.email,
            "name": user.name,
            "role": user.role,
        }, status=status.HTTP_200_OK)


class ProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = AccountService.get_profile(request.user.id, request.user.role)
        return Response(UserSerializer(user).data)


class UserDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        user = AccountService.get_user(
            target_user_id=user_id,
            acting_user_id=request.user.id,
            acting_role=request.user.role,
        )
        return Response(UserSerializer(user).data)
