import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from storefront.exceptions import CheckoutError, InsufficientStockError
from storefront.http import api_login_required, error_response, json_body

from . import services

logger = logging.getLogger(__name__)


def _checkout_error(e: CheckoutError) -> JsonResponse:
    extra = {}
    if isinstance(e, InsufficientStockError):
        extra = {"itemId": e.product_id, "availableQty": e.available}
    return error_response(e.message, status=e.status_code, **extra)


@csrf_exempt
@require_POST
def create_order_view(request):
    body = json_body(request)
    if body is None:
        return error_response("Invalid JSON body", status=400)
    try:
        data = services.request_gateway_order(body)
    except CheckoutError as e:
        return _checkout_error(e)
    except Exception:
        logger.exception("Create order error")
        return error_response("Failed to create order", status=500)
    return JsonResponse({"ok": True, "data": data})


@csrf_exempt
@require_POST
@api_login_required
def verify_payment_view(request):
    body = json_body(request)
    if body is None:
        return error_response("Invalid JSON body", status=400)
    try:
        result = services.confirm_gateway_payment(body, request.user)
    except CheckoutError as e:
        return _checkout_error(e)
    except Exception:
        logger.exception("Verify payment error")
        return error_response("Payment verification failed", status=500)

    if "order" in result:
        result["order"] = result["order"].to_dict()
    return JsonResponse({"ok": True, "message": "Payment verified successfully", "data": result})


@csrf_exempt
@require_POST
@api_login_required
def manual_payment_view(request):
    body = json_body(request)
    if body is None:
        return error_response("Invalid JSON body", status=400)
    try:
        order = services.submit_manual_payment(body, request.user)
    except CheckoutError as e:
        return _checkout_error(e)
    except Exception:
        logger.exception("Manual payment error")
        return error_response("Failed to process payment", status=500)
    return JsonResponse({
        "ok": True,
        "data": order.to_dict(),
        "message": "Order created successfully. Your payment is pending verification.",
    })
