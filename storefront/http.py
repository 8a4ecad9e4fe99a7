"""Small helpers shared by the JSON API views."""

import json
from functools import wraps

from django.http import JsonResponse


def json_body(request):
    try:
        body = json.loads(request.body.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def error_response(message: str, status: int, **extra) -> JsonResponse:
    return JsonResponse({"ok": False, "message": message, **extra}, status=status)


def api_login_required(view_func):
    """Like ``login_required`` but answers 401 JSON instead of redirecting."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error_response("Authentication required", status=401)
        return view_func(request, *args, **kwargs)

    return wrapper
