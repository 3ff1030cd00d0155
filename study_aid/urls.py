from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from study_aid import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health", views.health_check, name="health"),
    path("api/", include("accounts.urls")),
    path("api/", include("materials.urls")),
    path("api/", include("quiz.urls")),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
