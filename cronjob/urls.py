from django.urls import path, include
from rest_framework.routers import DefaultRouter
from cronjob.adapters.viewset.cronjob_viewset import CronjobViewSet

router = DefaultRouter()
router.register(r'cronjobs', CronjobViewSet, basename='cronjob')

urlpatterns = [
    path('', include(router.urls)),
]
