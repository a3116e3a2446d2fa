from __future__ import annotations
import enum


class ScoringMetric(enum.StrEnum):
    F1_SCORE = "f1_score"
    ACCURACY = "accuracy"
    PRECISION = "precision"
    RECALL = "recall"
    MAE = "mae"
    RMSE = "rmse"

    @property
    def higher_is_better(self) -> bool:
        return self not in _LOWER_IS_BETTER

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def decimals(self) -> int:
        return 4

    def format_score(self, score: float) -> str:
        return f"{score:.{self.decimals}f}"


_LOWER_IS_BETTER = frozenset({ScoringMetric.MAE, ScoringMetric.RMSE})

_DISPLAY_NAMES = {
    ScoringMetric.F1_SCORE: "F1 Score",
    ScoringMetric.ACCURACY: "Accuracy",
    ScoringMetric.PRECISION: "Precision",
    ScoringMetric.RECALL: "Recall",
    ScoringMetric.MAE: "MAE (Mean Absolute Error)",
    ScoringMetric.RMSE: "RMSE (Root Mean Squared Error)",
}
