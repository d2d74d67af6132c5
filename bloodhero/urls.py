from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    path('admin/', admin.site.urls),

    # API
    path('api/auth/', include('accounts.urls')),
    path('api/requests/', include('blood_requests.urls')),
    path('api/donors/', include('donors.urls')),
    path('api/notifications/', include('notifications.urls')),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
