import os
import tempfile

from django.test import SimpleTestCase, override_settings

from academico.academic.curricula import (
    build_registry,
    get_curriculum_registry,
    load_curricula,
    reset_curriculum_registry,
)
from academico.services.shared.errors import CurriculumConfigError, InvalidCurriculum


def _write_yaml(text: str) -> str:
    fd, path = tempfile.mkstemp(suffix=".yaml")
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(text)
    return path


VALID_YAML = """
curricula:
  - id: Civil
    name: Ingeniería Civil
    courses:
      - {key: estatica, name: Estática, weight: 4}
      - {key: topografia, weight: 3}
"""


class CurriculaLoaderTests(SimpleTestCase):
    def tearDown(self):
        reset_curriculum_registry()

    def test_load_valid_file(self):
        path = _write_yaml(VALID_YAML)
        self.addCleanup(os.remove, path)
        registry = load_curricula(path)
        plan = registry.get("civil")
        self.assertEqual(plan.id, "civil")
        self.assertEqual(plan.total_credits, 7)
        self.assertEqual(plan.course_keys, ("estatica", "topografia"))
        self.assertEqual(plan.courses[1].name, "topografia")
        self.assertIn("CIVIL", registry)

    def test_describe(self):
        registry = build_registry(
            {"curricula": [{"id": "x", "name": "X", "courses": [{"key": "a", "name": "A", "weight": 2}]}]}
        )
        self.assertEqual(
            registry.get("x").describe(),
            {"id": "x", "nombre": "X", "creditosTotales": 2, "cursos": [{"clave": "a", "nombre": "A", "peso": 2}]},
        )

    def test_missing_file(self):
        with self.assertRaises(CurriculumConfigError):
            load_curricula("/nonexistent/curricula.yaml")

    def test_invalid_yaml(self):
        path = _write_yaml("curricula: [unclosed")
        self.addCleanup(os.remove, path)
        with self.assertRaises(CurriculumConfigError):
            load_curricula(path)

    def test_rejects_bad_weights(self):
        for weight in (0, -3, 2.5, "4", True, None):
            with self.subTest(weight=weight):
                with self.assertRaises(CurriculumConfigError):
                    build_registry({"curricula": [{"id": "x", "courses": [{"key": "a", "weight": weight}]}]})

    def test_rejects_duplicates_and_empty_plans(self):
        with self.assertRaises(CurriculumConfigError):
            build_registry(
                {"curricula": [{"id": "x", "courses": [{"key": "a", "weight": 1}, {"key": "a", "weight": 2}]}]}
            )
        with self.assertRaises(CurriculumConfigError):
            build_registry(
                {
                    "curricula": [
                        {"id": "x", "courses": [{"key": "a", "weight": 1}]},
                        {"id": "X", "courses": [{"key": "b", "weight": 1}]},
                    ]
                }
            )
        with self.assertRaises(CurriculumConfigError):
            build_registry({"curricula": [{"id": "x", "courses": []}]})
        with self.assertRaises(CurriculumConfigError):
            build_registry({"planes": []})

    def test_unknown_curriculum(self):
        registry = build_registry({"curricula": [{"id": "x", "courses": [{"key": "a", "weight": 1}]}]})
        with self.assertRaises(InvalidCurriculum):
            registry.get("y")

    def test_default_file_ships_systems_plan(self):
        plan = get_curriculum_registry().get("systems")
        self.assertEqual(plan.total_credits, 22)
        self.assertEqual(
            dict(plan.weights),
            {"integral": 5, "lineal": 4, "algoritmia": 3, "etica": 2, "tcs": 3, "psico": 3, "biologia": 2},
        )

    def test_registry_follows_configured_file(self):
        path = _write_yaml(VALID_YAML)
        self.addCleanup(os.remove, path)
        with override_settings(PONDERADO={"CURRICULA_FILE": path}):
            self.assertEqual(get_curriculum_registry().ids(), ["civil"])
