"""Tests for the cosine similarity scorer."""

from __future__ import annotations

import math

import pytest

from minime.core.vector_store.similarity import SENTINEL_SCORE, cosine_similarity


@pytest.mark.parametrize(
    "a, b",
    [
        ([1.0, 2.0, 3.0], [3.0, -1.0, 0.5]),
        ([0.1, 0.2], [0.3, 0.4]),
        ([-1.0, 5.0, 2.5, 0.0], [4.0, 4.0, -2.0, 1.0]),
    ],
)
def test_score_is_symmetric(a, b):
    assert cosine_similarity(a, b) == cosine_similarity(b, a)


@pytest.mark.parametrize("vector", [[1.0, 0.0], [3.0, 4.0], [0.2, -0.7, 1.9], [1e-3, 2e-3]])
def test_vector_scores_one_against_itself(vector):
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_orthogonal_and_opposite_vectors():
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)


def test_mismatched_lengths_return_sentinel():
    assert cosine_similarity([1, 0], [1, 0, 0]) == SENTINEL_SCORE


@pytest.mark.parametrize("a, b", [(None, [1.0]), ([1.0], None), (None, None), ([], [])])
def test_absent_inputs_return_sentinel(a, b):
    assert cosine_similarity(a, b) == SENTINEL_SCORE


def test_zero_norm_never_produces_nan():
    score = cosine_similarity([0.0, 0.0], [1.0, 1.0])
    assert not math.isnan(score)
    assert score == SENTINEL_SCORE


def test_sentinel_is_below_any_valid_score():
    assert SENTINEL_SCORE <= cosine_similarity([1.0, 0.0], [-1.0, 0.0])
