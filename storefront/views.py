from django.http import JsonResponse


def error_404_view(request, exception):
    # The storefront is consumed by the React client, so errors stay JSON
    return JsonResponse({"ok": False, "message": "Not found"}, status=404)


def error_500_view(request):
    return JsonResponse({"ok": False, "message": "Internal server error"}, status=500)
