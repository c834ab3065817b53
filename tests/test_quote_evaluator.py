import unittest

from freightsim.core.errors import EmptyDatasetError, InvalidParameterError
from freightsim.core.orchestrator import SimulationOrchestrator
from freightsim.core.quote_evaluator import (
    QuoteEvaluator,
    confidence,
    evaluate_quote,
    recommend,
    risk_score,
)
from freightsim.models.lane import Lane, Quote
from freightsim.models.results import Recommendation, RiskLevel
from freightsim.models.simulation import SimulationParams


class QuoteEvaluatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.evaluator = QuoteEvaluator()
        self.rates = [float(v) for v in range(1, 101)]

    def test_cheap_quote_books_now(self) -> None:
        rates = [600.0 + i for i in range(200)]
        evaluation = self.evaluator.evaluate(500.0, 650.0, rates)
        self.assertEqual(evaluation.percentile, 0.0)
        self.assertEqual(evaluation.recommendation, Recommendation.BOOK_NOW)
        self.assertAlmostEqual(evaluation.risk_score, 2.0)
        self.assertEqual(evaluation.risk_band, RiskLevel.LOW)
        self.assertAlmostEqual(evaluation.confidence, 50.0)

    def test_ninetieth_percentile_rejects(self) -> None:
        evaluation = self.evaluator.evaluate(90.5, 50.0, self.rates)
        self.assertEqual(evaluation.percentile, 90.0)
        self.assertEqual(evaluation.recommendation, Recommendation.REJECT)
        self.assertEqual(recommend(90.0001, 0.0), Recommendation.REJECT)
        self.assertEqual(recommend(89.9, 0.0), Recommendation.NEGOTIATE)

    def test_percentile_is_monotonic_in_quote(self) -> None:
        percentiles = [
            self.evaluator.evaluate(quote, 50.0, self.rates).percentile
            for quote in (0.5, 10.0, 25.5, 50.0, 75.5, 99.0, 150.0)
        ]
        self.assertEqual(percentiles, sorted(percentiles))
        self.assertEqual(percentiles[0], 0.0)
        self.assertEqual(percentiles[-1], 100.0)

    def test_variances(self) -> None:
        evaluation = self.evaluator.evaluate(1100.0, 1000.0, [1000.0] * 10)
        self.assertAlmostEqual(evaluation.market_variance, 0.1)
        self.assertAlmostEqual(evaluation.model_variance, 0.1)
        self.assertEqual(evaluation.percentile, 100.0)
        self.assertEqual(evaluation.recommendation, Recommendation.REJECT)
        self.assertEqual(evaluation.risk_band, RiskLevel.HIGH)

    def test_invalid_inputs(self) -> None:
        with self.assertRaises(InvalidParameterError):
            self.evaluator.evaluate(0.0, 1000.0, self.rates)
        with self.assertRaises(InvalidParameterError):
            self.evaluator.evaluate(100.0, 0.0, self.rates)
        with self.assertRaises(EmptyDatasetError):
            self.evaluator.evaluate(100.0, 100.0, [])


class DecisionRuleTests(unittest.TestCase):
    def test_recommendation_rules(self) -> None:
        self.assertEqual(recommend(80.0, 0.0), Recommendation.NEGOTIATE)
        self.assertEqual(recommend(75.0, 0.0), Recommendation.BOOK_NOW)
        self.assertEqual(recommend(5.0, 0.5), Recommendation.BOOK_NOW)
        self.assertEqual(recommend(25.0, 0.0), Recommendation.WAIT)
        self.assertEqual(recommend(25.0, -0.10), Recommendation.BOOK_NOW)
        self.assertEqual(recommend(40.0, 0.0), Recommendation.WAIT)
        self.assertEqual(recommend(50.0, 0.0), Recommendation.BOOK_NOW)

    def test_risk_score_breakpoints(self) -> None:
        self.assertAlmostEqual(risk_score(0.0), 2.0)
        self.assertAlmostEqual(risk_score(25.0), 4.0)
        self.assertAlmostEqual(risk_score(50.0), 5.5)
        self.assertAlmostEqual(risk_score(75.0), 7.0)
        self.assertAlmostEqual(risk_score(100.0), 10.0)

    def test_confidence_peaks_at_median(self) -> None:
        self.assertEqual(confidence(50.0), 95.0)
        self.assertEqual(confidence(0.0), 50.0)
        self.assertEqual(confidence(100.0), 50.0)
        self.assertEqual(confidence(30.0), 80.0)


class EvaluateQuoteTests(unittest.TestCase):
    def test_against_simulated_lane(self) -> None:
        lane = Lane.from_record(
            {
                "origin": "Rotterdam",
                "destination": "New York",
                "name": "Europe-East Coast US",
                "indexValue": 2890.3,
                "laneRatio": 0.95,
                "segments": [{"name": "Ocean Transit", "baselineDays": 10.0}],
                "factors": [
                    {
                        "name": "Carrier Premium",
                        "type": "carrierPremium",
                        "meanMultiplier": 1.0,
                        "distribution": "normal",
                        "parameters": {"stdDev": 0.05},
                    }
                ],
            }
        )
        result = SimulationOrchestrator(seed=21).run(SimulationParams.from_lane(lane, 2_000))
        cheap = evaluate_quote(Quote(rate=lane.baseline_rate * 0.8), lane, result)
        expensive = evaluate_quote(Quote(rate=lane.baseline_rate * 1.2), lane, result.outcomes)
        self.assertEqual(cheap.recommendation, Recommendation.BOOK_NOW)
        self.assertEqual(expensive.recommendation, Recommendation.REJECT)
        self.assertLess(cheap.percentile, expensive.percentile)


if __name__ == "__main__":
    unittest.main()
