from django.urls import path
from .views import RegisterView, LoginView, ProfileView, UserDetailView

urlpatterns = [
    path('register', RegisterView.as_view(), name='user-register'),
    path('login', LoginView.as_view(), name='user-login'),
    path('profile', ProfileView.as_view(), name='user-profile'),
    path('<uuid:user_id>', UserDetailView.as_view(), name='user-detail'),
]
