from django.urls import path
from . import views
app_name = "orders"
urlpatterns = [
    path("mine", views.my_orders_view, name="my_orders"),
]
