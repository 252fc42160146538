"""Naive Bayes scoring over sparse TF-IDF vectors.

A label's score is its log prior (zero when the model carries none) plus the
dot product of the feature vector with the label's column of log weights:

    score(l) = prior(l) + sum_t vector[t] * weight(t, l)

Models persisted with raw per-(term, label) training sums are turned into
log weights by :func:`materialize`, using either the standard multinomial
estimate or the complementary one.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Mapping

from .errors import ScoringError
from .models import FeatureVector, ScoreVector, WeightModel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Materialization of raw training sums
# ---------------------------------------------------------------------------

def materialize(
    raw_weights: Mapping[int, Mapping[int, float]],
    num_labels: int,
    alpha_i: float = 1.0,
    complementary: bool = False,
    label_prior: Mapping[int, float] | None = None,
) -> WeightModel:
    """Convert summed training weights into a log-weight model.

    With ``W`` the raw weight of a (term, label) pair, ``F`` the number of
    terms and ``a`` the smoothing constant ``alpha_i``:

    - standard: ``ln((W + a) / (label_sum + a * F))``
    - complementary: ``-ln((feature_sum - W + a) / (total - label_sum + a * F))``

    Every term on the term axis receives a weight for every label, so pairs
    that were never observed in training still get their smoothed value.

    Args:
        raw_weights: term-id -> label-id -> summed TF-IDF weight.
        num_labels: Size of the label axis.
        alpha_i: Additive smoothing constant, must be positive.
        complementary: Use the complementary Naive Bayes estimate.
        label_prior: Optional log prior per label, passed through.

    Raises:
        ValueError: If ``alpha_i`` is not positive or ``num_labels`` < 1.
    """
    if alpha_i <= 0:
        raise ValueError(f"alpha_i must be positive, got {alpha_i}")
    if num_labels < 1:
        raise ValueError(f"num_labels must be >= 1, got {num_labels}")

    label_sums: dict[int, float] = defaultdict(float)
    feature_sums: dict[int, float] = defaultdict(float)
    for term_id, row in raw_weights.items():
        for label_id, weight in row.items():
            label_sums[label_id] += weight
            feature_sums[term_id] += weight
    total = sum(label_sums.values())
    num_features = len(raw_weights)

    weights: dict[int, dict[int, float]] = {}
    for term_id, row in raw_weights.items():
        column: dict[int, float] = {}
        for label_id in range(num_labels):
            w = row.get(label_id, 0.0)
            if complementary:
                numerator = feature_sums[term_id] - w + alpha_i
                denominator = total - label_sums[label_id] + alpha_i * num_features
                column[label_id] = -math.log(numerator / denominator)
            else:
                numerator = w + alpha_i
                denominator = label_sums[label_id] + alpha_i * num_features
                column[label_id] = math.log(numerator / denominator)
        weights[term_id] = column

    logger.debug(
        "Materialized %s model: %d terms x %d labels (alpha_i=%s)",
        "complementary" if complementary else "standard",
        num_features,
        num_labels,
        alpha_i,
    )
    return WeightModel(
        num_labels=num_labels,
        weights=weights,
        label_prior=label_prior or {},
        complementary=complementary,
    )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class BayesScorer:
    """Scores feature vectors against a materialized :class:`WeightModel`.

    The scorer only reads the model, so one instance can serve any number of
    requests.
    """

    def __init__(self, model: WeightModel) -> None:
        self.model = model

    def classify(self, vector: FeatureVector) -> ScoreVector:
        """Score ``vector`` for every label.

        Returns:
            Label-id to score, one entry per label in label-id order. An
            empty vector yields the prior of each label (zero without one).

        Raises:
            ScoringError: If any score is NaN or infinite.
        """
        model = self.model
        scores: ScoreVector = {label_id: model.prior(label_id) for label_id in model.label_ids}

        # Sum in term-id order.
        for term_id, value in sorted(vector.items()):
            if value == 0.0:
                continue
            row = model.weights.get(term_id)
            if row is None:
                continue
            for label_id in model.label_ids:
                scores[label_id] += value * row.get(label_id, 0.0)

        for label_id, score in scores.items():
            if not math.isfinite(score):
                raise ScoringError(f"Score for label {label_id} is not finite: {score}")
        return scores


def best_label(scores: ScoreVector) -> tuple[int, float]:
    """Return the label id with the greatest score and that score.

    Labels are visited in ascending id order and only a strictly greater
    score replaces the current best, so ties go to the lowest id.

    Raises:
        ScoringError: If ``scores`` is empty.
    """
    if not scores:
        raise ScoringError("Cannot select a label from an empty score vector")
    ordered = sorted(scores)
    best_id = ordered[0]
    best_score = scores[best_id]
    for label_id in ordered[1:]:
        if scores[label_id] > best_score:
            best_id, best_score = label_id, scores[label_id]
    return best_id, best_score


def probabilities(scores: ScoreVector) -> dict[int, float]:
    """Softmax of log scores, computed with log-sum-exp for stability."""
    if not scores:
        return {}
    max_score = max(scores.values())
    exp_scores = {label_id: math.exp(s - max_score) for label_id, s in scores.items()}
    total = sum(exp_scores.values())
    return {label_id: e / total for label_id, e in exp_scores.items()}
