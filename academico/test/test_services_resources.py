import os
import shutil
import tempfile
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase, override_settings

from academico.models import LibraryResource
from academico.services.resources import service as resources_service
from academico.services.shared.errors import (
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailable,
    ValidationError,
)

MEDIA_DIR = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_DIR)
class ResourceServiceTests(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_DIR, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.owner = User.objects.create_user(username="ana", password="pass123")
        self.other = User.objects.create_user(username="beto", password="pass123")

    def _file(self, name="apuntes.pdf", content=b"%PDF-1.4 apuntes"):
        return SimpleUploadedFile(name, content, content_type="application/pdf")

    def test_upload_and_list(self):
        out = resources_service.upload_resources(self.owner, [self._file()], title="Apuntes de Integral", course="integral")
        self.assertEqual(out["status"], "success")
        self.assertEqual(out["resources"][0]["title"], "Apuntes de Integral")
        self.assertEqual(out["resources"][0]["owner"], "ana")

        listed = resources_service.list_resources(course="INTEGRAL")
        self.assertEqual(len(listed), 1)
        self.assertEqual(resources_service.list_resources(query="apuntes")[0]["course"], "integral")
        self.assertEqual(resources_service.list_resources(query="química"), [])

    def test_title_defaults_to_filename(self):
        out = resources_service.upload_resources(self.owner, [self._file("guia_lineal.pdf")])
        self.assertEqual(out["resources"][0]["title"], "guia_lineal.pdf")

    def test_rejects_disallowed_extension_and_keeps_valid(self):
        files = [self._file("virus.exe", b"MZ"), self._file("ok.pdf")]
        out = resources_service.upload_resources(self.owner, files)
        self.assertEqual(out["status"], "success")
        self.assertIn("virus.exe", out["msg"])
        self.assertEqual(LibraryResource.objects.count(), 1)

    @override_settings(PONDERADO={"CURRICULA_FILE": "", "RESOURCE_MAX_BYTES": 4, "RESOURCE_ALLOWED_EXTENSIONS": [".pdf"]})
    def test_rejects_oversized_file(self):
        out = resources_service.upload_resources(self.owner, [self._file(content=b"0123456789")])
        self.assertEqual(out["status"], "error")
        self.assertEqual(LibraryResource.objects.count(), 0)

    def test_path_components_are_stripped(self):
        out = resources_service.upload_resources(self.owner, [self._file("../../etc/notas.pdf")])
        self.assertEqual(out["resources"][0]["title"], "notas.pdf")

    def test_empty_upload(self):
        with self.assertRaises(ValidationError):
            resources_service.upload_resources(self.owner, [])

    def test_delete_permissions(self):
        out = resources_service.upload_resources(self.owner, [self._file()])
        rid = out["resources"][0]["id"]
        with self.assertRaises(PermissionDeniedError):
            resources_service.delete_resource(self.other, rid)
        resources_service.delete_resource(self.owner, rid)
        self.assertFalse(LibraryResource.objects.filter(id=rid).exists())
        with self.assertRaises(NotFoundError):
            resources_service.delete_resource(self.owner, rid)

    def test_store_failure_mid_batch_keeps_nothing(self):
        real_create = LibraryResource.objects.create
        calls = {"n": 0}

        def _flaky_create(**kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise DatabaseError("conexión perdida")
            return real_create(**kwargs)

        files = [self._file("uno.pdf"), self._file("dos.pdf")]
        with patch.object(LibraryResource.objects, "create", side_effect=_flaky_create):
            with self.assertRaises(StoreUnavailable):
                resources_service.upload_resources(self.owner, files)

        self.assertEqual(LibraryResource.objects.count(), 0)
        stored = [name for _root, _dirs, names in os.walk(MEDIA_DIR) for name in names]
        self.assertNotIn("uno.pdf", stored)

    def test_store_failure_on_delete_lookup(self):
        out = resources_service.upload_resources(self.owner, [self._file()])
        rid = out["resources"][0]["id"]
        with patch.object(LibraryResource.objects, "select_related", side_effect=DatabaseError("down")):
            with self.assertRaises(StoreUnavailable):
                resources_service.delete_resource(self.owner, rid)
