import logging

from django.test import RequestFactory, SimpleTestCase

from academico.middleware import RequestContextMiddleware, client_ip
from config.logging_filters import RequestContextFilter


class RequestContextFilterTests(SimpleTestCase):
    def _record(self, **extra):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        for k, v in extra.items():
            setattr(record, k, v)
        return record

    def test_missing_fields_default_to_dash(self):
        record = self._record()
        self.assertTrue(RequestContextFilter().filter(record))
        self.assertEqual(record.request_id, "-")
        self.assertEqual(record.user, "-")
        self.assertEqual(record.status_color, "")

    def test_status_color(self):
        record = self._record(status=503)
        RequestContextFilter().filter(record)
        self.assertEqual(record.status_color, "\x1b[31m")


class RequestContextMiddlewareTests(SimpleTestCase):
    def test_assigns_request_id_and_logs_access(self):
        rf = RequestFactory()
        request = rf.get("/api/ranking/", HTTP_X_FORWARDED_FOR="10.0.0.1, 172.16.0.1")
        seen = {}

        def _view(req):
            from django.http import JsonResponse

            seen["rid"] = req.request_id
            return JsonResponse({"ok": True})

        with self.assertLogs("request", level="INFO") as logs:
            response = RequestContextMiddleware(_view)(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(seen["rid"]), 10)
        self.assertEqual(request.audit["ip"], "10.0.0.1")
        self.assertIn("/api/ranking/ -> 200", logs.output[0])
        self.assertEqual(client_ip(request), "10.0.0.1")
