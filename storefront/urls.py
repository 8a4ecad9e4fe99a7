from django.contrib import admin
from django.urls import include, path

from . import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/payment/", include("payments.urls")),
    path("api/orders/", include("orders.urls")),
]

handler404 = views.error_404_view
handler500 = views.error_500_view
