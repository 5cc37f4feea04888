from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .adapters.viewsets.user_viewset import UserViewSet

router = DefaultRouter()
router.register(r'users', UserViewSet, basename='user')

urlpatterns = [
    path('', include(router.urls)),
]
