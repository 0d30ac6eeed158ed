from django.urls import include, path

urlpatterns = [
    path("api/", include("apps.employees.urls")),
    path("api/", include("apps.catalog.urls")),
    path("api/", include("apps.targets.urls")),
    path("api/", include("apps.analytics.urls")),
]
