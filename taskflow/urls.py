from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('summernote/', include('django_summernote.urls')),

    path('api/v1/auth/', include('user.urls')),
    path('api/v1/', include('user.admin_urls')),
    path('api/v1/', include('task.urls')),
    path('api/v1/', include('activity.urls')),
    path('api/v1/', include('cronjob.urls')),
    path('api/v1/', include('dashboard.urls')),

    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
