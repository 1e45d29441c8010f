from django.test import SimpleTestCase

from academico.academic.risk import (
    RISK_TIERS,
    TIER_CRITICAL,
    TIER_HIGH,
    TIER_LOW,
    TIER_MEDIUM,
    classify_risk,
    tier_rank,
    validate_risk_score,
)
from academico.services.shared.errors import ValidationError


class RiskTierTests(SimpleTestCase):
    def test_boundaries_are_inclusive_lower(self):
        self.assertEqual(classify_risk(0), TIER_LOW)
        self.assertEqual(classify_risk(2.999), TIER_LOW)
        self.assertEqual(classify_risk(3.0), TIER_MEDIUM)
        self.assertEqual(classify_risk(4.99), TIER_MEDIUM)
        self.assertEqual(classify_risk(5.0), TIER_HIGH)
        self.assertEqual(classify_risk(6.999), TIER_HIGH)
        self.assertEqual(classify_risk(7.0), TIER_CRITICAL)
        self.assertEqual(classify_risk(10), TIER_CRITICAL)

    def test_monotonic(self):
        scores = [x / 10 for x in range(0, 101)]
        ranks = [tier_rank(classify_risk(s)) for s in scores]
        self.assertEqual(ranks, sorted(ranks))

    def test_tier_order(self):
        self.assertEqual(RISK_TIERS, ("Bajo", "Medio", "Alto", "Crítico"))

    def test_validate_accepts_numeric_strings(self):
        self.assertEqual(validate_risk_score("5.5"), 5.5)

    def test_validate_rejects_out_of_range_and_garbage(self):
        for raw in (-0.1, 10.01, "abc", None, True, float("nan"), float("inf"), 10 ** 400):
            with self.subTest(raw=raw):
                with self.assertRaises(ValidationError):
                    validate_risk_score(raw)
