from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth.models import User
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from academico.models import RankingEntry
from academico.services.grades import service as grades_service
from academico.services.shared.errors import (
    InvalidCurriculum,
    InvalidGrade,
    StoreUnavailable,
    ValidationError,
)

GRADES = {
    "integral": 16,
    "lineal": 14,
    "algoritmia": 12,
    "etica": 18,
    "tcs": 10,
    "psico": 15,
    "biologia": 13,
}


class CalculateAndRecordTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="ana", password="pass123")

    def test_records_one_row_per_calculation(self):
        payload = grades_service.calculate_and_record("Ana", "systems", GRADES, user=self.user)
        self.assertEqual(payload["ponderado"], 14.0455)
        self.assertEqual(payload["nombre"], "Ana")
        self.assertEqual(payload["mensaje"], "¡Cálculo exitoso!")

        entry = RankingEntry.objects.get(id=payload["id"])
        self.assertEqual(entry.user, self.user)
        self.assertEqual(entry.curriculum, "systems")
        self.assertEqual(entry.credits_used, 22)
        self.assertEqual(entry.grades["integral"], 16.0)

        grades_service.calculate_and_record("Ana", "systems", GRADES, user=self.user)
        self.assertEqual(RankingEntry.objects.count(), 2)

    @override_settings(PONDERADO={"CURRICULA_FILE": "", "AVERAGE_DECIMALS": 2})
    def test_two_decimal_setting(self):
        from academico.academic.curricula import build_registry

        weights = {"integral": 5, "lineal": 4, "algoritmia": 3, "etica": 2, "tcs": 3, "psico": 3, "biologia": 2}
        registry = build_registry(
            {"curricula": [{"id": "systems", "courses": [{"key": k, "weight": w} for k, w in weights.items()]}]}
        )
        payload = grades_service.calculate_and_record("Ana", "systems", GRADES, registry=registry)
        self.assertEqual(payload["ponderado"], 14.05)

    def test_anonymous_calculation_has_no_user(self):
        payload = grades_service.calculate_and_record("Invitado", "systems", GRADES)
        self.assertIsNone(RankingEntry.objects.get(id=payload["id"]).user)

    def test_invalid_input_writes_nothing(self):
        with self.assertRaises(InvalidCurriculum):
            grades_service.calculate_and_record("Ana", "medicina", GRADES)
        with self.assertRaises(InvalidGrade):
            grades_service.calculate_and_record("Ana", "systems", dict(GRADES, tcs=25))
        with self.assertRaises(ValidationError):
            grades_service.calculate_and_record("   ", "systems", GRADES)
        with self.assertRaises(ValidationError):
            grades_service.calculate_and_record("x" * 121, "systems", GRADES)
        self.assertEqual(RankingEntry.objects.count(), 0)

    def test_store_failure_is_reported(self):
        with patch.object(RankingEntry.objects, "create", side_effect=DatabaseError("down")):
            with self.assertRaises(StoreUnavailable):
                grades_service.calculate_and_record("Ana", "systems", GRADES)

    def test_list_curricula(self):
        ids = [c["id"] for c in grades_service.list_curricula()]
        self.assertIn("systems", ids)


class RankingQueryTests(TestCase):
    def _entry(self, name, average, curriculum="systems", age_minutes=0):
        entry = RankingEntry.objects.create(
            name=name,
            curriculum=curriculum,
            grades={},
            average=average,
            credits_used=22,
        )
        RankingEntry.objects.filter(id=entry.id).update(
            created_at=timezone.now() - timedelta(minutes=age_minutes)
        )
        return entry

    def test_sorted_descending_with_positions(self):
        self._entry("B", 12.5)
        self._entry("A", 17.0)
        self._entry("C", 9.25)
        rows = grades_service.query_ranking()
        self.assertEqual([r["nombre"] for r in rows], ["A", "B", "C"])
        self.assertEqual([r["posicion"] for r in rows], [1, 2, 3])
        self.assertEqual(rows[0]["ponderado"], 17.0)

    def test_ties_keep_oldest_first(self):
        self._entry("nuevo", 15.0, age_minutes=1)
        self._entry("antiguo", 15.0, age_minutes=30)
        rows = grades_service.query_ranking()
        self.assertEqual([r["nombre"] for r in rows], ["antiguo", "nuevo"])

    def test_filter_by_curriculum(self):
        self._entry("S", 14.0, curriculum="systems")
        self._entry("I", 18.0, curriculum="industrial")
        rows = grades_service.query_ranking(curriculum="Industrial")
        self.assertEqual([r["nombre"] for r in rows], ["I"])
        self.assertEqual(len(grades_service.query_ranking(curriculum="general")), 2)

    def test_unknown_curriculum_filter(self):
        with self.assertRaises(InvalidCurriculum):
            grades_service.query_ranking(curriculum="medicina")

    @override_settings(PONDERADO={"CURRICULA_FILE": "", "RANKING_PAGE_SIZE": 3})
    def test_limit_is_capped_by_page_size(self):
        for i in range(5):
            self._entry(f"E{i}", float(i))
        self.assertEqual(len(grades_service.query_ranking(limit=100)), 3)
        self.assertEqual(len(grades_service.query_ranking(limit="2")), 2)
        self.assertEqual(len(grades_service.query_ranking(limit=0)), 1)

    def test_limit_must_be_integer(self):
        with self.assertRaises(ValidationError):
            grades_service.query_ranking(limit="muchos")

    def test_store_failure_on_query(self):
        with patch.object(RankingEntry.objects, "all", side_effect=DatabaseError("down")):
            with self.assertRaises(StoreUnavailable):
                grades_service.query_ranking()
