_CONTEXT_FIELDS = ("request_id", "user", "ip", "method", "path", "status", "duration_ms")

_STATUS_COLORS = (
    (200, 300, "\x1b[32m"),  # verde
    (400, 500, "\x1b[33m"),  # amarillo
    (500, 600, "\x1b[31m"),  # rojo
)


class RequestContextFilter:
    """
    Garantiza que cada registro tenga los campos de contexto HTTP
    (request_id, user, ip, ...). Los que falten quedan como '-'.
    """

    def filter(self, record):
        for field in _CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        record.status_color = ""
        try:
            status = int(record.status)
        except (TypeError, ValueError):
            return True
        for low, high, color in _STATUS_COLORS:
            if low <= status < high:
                record.status_color = color
                break
        return True
