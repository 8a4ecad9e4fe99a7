from django.views.decorators.http import require_GET
from django.http import JsonResponse

from storefront.http import api_login_required

from .models import Order

PAGE_SIZE = 10


@require_GET
@api_login_required
def my_orders_view(request):
    """List previous orders for the logged-in customer, newest first."""
    qs = Order.objects.filter(user=request.user).order_by("-created_at", "-id")

    try:
        page = int(request.GET.get("page", "1"))
        if page < 1: page = 1
    except (TypeError, ValueError):
        page = 1
    start = (page - 1) * PAGE_SIZE
    end = start + PAGE_SIZE
    total = qs.count()
    orders = [o.to_dict() for o in qs[start:end]]

    return JsonResponse({
        "ok": True,
        "data": orders,
        "page": page,
        "hasNext": end < total,
        "hasPrev": start > 0,
    })
