from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/invoices/", include("invoicing.urls")),
    path("api/dispatches/", include("dispatches.urls")),
]
