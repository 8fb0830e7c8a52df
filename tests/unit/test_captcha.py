"""Tests for the arithmetic checkout challenge."""

import random

import pytest

from security.captcha import Challenge, generate_challenge, validate_challenge


class TestGenerateChallenge:

    def test_many_challenges_are_well_formed(self):
        rng = random.Random(1234)
        for _ in range(500):
            challenge = generate_challenge(rng)
            assert isinstance(challenge, Challenge)
            assert isinstance(challenge.answer, int)
            assert challenge.answer >= 0

    def test_subtraction_is_never_negative(self):
        rng = random.Random(99)
        seen = 0
        for _ in range(1000):
            challenge = generate_challenge(rng)
            if " - " not in challenge.question:
                continue
            seen += 1
            larger, smaller = (int(x) for x in challenge.question.split(" - "))
            assert larger >= smaller
            assert challenge.answer == larger - smaller
        assert seen > 0

    def test_multiplication_operands_stay_small(self):
        rng = random.Random(7)
        for _ in range(1000):
            challenge = generate_challenge(rng)
            if "×" in challenge.question:
                a, b = (int(x) for x in challenge.question.split(" × "))
                assert 1 <= a <= 5 and 1 <= b <= 5
                assert challenge.answer == a * b

    def test_addition_operands_in_range(self):
        rng = random.Random(3)
        for _ in range(1000):
            challenge = generate_challenge(rng)
            if " + " in challenge.question:
                a, b = (int(x) for x in challenge.question.split(" + "))
                assert 1 <= a <= 10 and 1 <= b <= 10
                assert challenge.answer == a + b

    def test_default_rng(self):
        assert generate_challenge().question


class TestValidateChallenge:

    @pytest.mark.parametrize("submitted", [12, "12", " 12", "12abc", 12.9, "+12"])
    def test_integer_coercion_matches(self, submitted):
        assert validate_challenge(submitted, 12) is True

    @pytest.mark.parametrize("submitted", [11, "13", "", "abc", None, True, [], float("nan")])
    def test_mismatch_or_garbage(self, submitted):
        assert validate_challenge(submitted, 12) is False

    def test_zero_answer(self):
        assert validate_challenge("0", 0) is True
        assert validate_challenge(None, 0) is False
