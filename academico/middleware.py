import logging
import time
import uuid

logger = logging.getLogger("request")


def client_ip(request) -> str:
    ip = request.META.get("HTTP_X_FORWARDED_FOR") or request.META.get("REMOTE_ADDR") or "-"
    return ip.split(",")[0].strip() if ip else "-"


class RequestContextMiddleware:
    """
    Asigna request_id a cada request y escribe 1 línea de access log:
    HTTP METHOD PATH -> STATUS (ms) user ip
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.request_id = uuid.uuid4().hex[:10]
        t0 = time.time()
        ip = client_ip(request)
        user_obj = getattr(request, "user", None)
        authenticated = bool(user_obj and getattr(user_obj, "is_authenticated", False))
        request.audit = {
            "request_id": request.request_id,
            "user": getattr(user_obj, "username", "-") if authenticated else "-",
            "ip": ip,
        }

        response = None
        try:
            response = self.get_response(request)
            return response
        finally:
            dur_ms = int((time.time() - t0) * 1000)
            status = getattr(response, "status_code", 500)
            # el usuario puede cambiar dentro del request (login/logout)
            user_obj = getattr(request, "user", None)
            user = (
                getattr(user_obj, "username", "-")
                if user_obj and getattr(user_obj, "is_authenticated", False)
                else "anon"
            )
            logger.info(
                "HTTP %s %s -> %s (%sms) user=%s ip=%s",
                request.method,
                request.path,
                status,
                dur_ms,
                user,
                ip,
                extra={
                    "request_id": request.request_id,
                    "user": user,
                    "ip": ip,
                    "method": request.method,
                    "path": request.path,
                    "status": status,
                    "duration_ms": dur_ms,
                },
            )
