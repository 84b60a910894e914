"""
Tests for app/services/safety_service.py.

Covers:
* validate_content() — each penalty, clamping, rounding
* strict (any issue invalidates) vs graduated validity
* homework and dangerous pattern families
* validate_educational_context()
* log_safety_event()
"""

from __future__ import annotations

import logging

import pytest

from app.services.safety_service import SUGGESTED_TOPICS, SafetyService
from tests.conftest import EDUCATIONAL_QUESTION


# ── Clean input ───────────────────────────────────────────────────────

def test_educational_question_is_valid(safety):
    result = safety.validate_content(EDUCATIONAL_QUESTION)
    assert result.is_valid
    assert result.safety_score == 1.0
    assert result.issues == []
    assert result.suggestions == []


# ── Blocked keywords ──────────────────────────────────────────────────

@pytest.mark.parametrize("keyword", ["inappropriate", "harmful", "dangerous"])
def test_blocked_keyword_invalidates(safety, keyword):
    result = safety.validate_content(f"Explain why this {keyword} reaction happens in chemistry")
    assert not result.is_valid
    assert result.safety_score == 0.5
    assert result.issues == [f"Contains inappropriate content: {keyword}"]


def test_blocked_keyword_is_case_insensitive(safety):
    result = safety.validate_content("Explain why this is DANGEROUS")
    assert not result.is_valid
    assert "Contains inappropriate content: dangerous" in result.issues


def test_all_found_keywords_are_reported(safety):
    result = safety.validate_content("Explain the harmful and dangerous effects")
    assert result.issues[0] == "Contains inappropriate content: harmful, dangerous"


def test_configured_keywords_replace_defaults():
    service = SafetyService(blocked_keywords=["cheat"], educational_topics=[])
    assert not service.validate_content("How can I cheat on the exam?").is_valid
    assert service.validate_content("Explain why harmful algae bloom").is_valid


# ── Educational indicators ────────────────────────────────────────────

def test_empty_text_scores_at_most_threshold(safety):
    result = safety.validate_content("")
    assert result.safety_score <= 0.7
    assert not result.is_valid
    assert result.issues == ["Content does not appear to be educational"]


def test_near_empty_text_is_not_educational(safety):
    result = safety.validate_content("hi")
    assert result.safety_score == 0.7
    assert "Content does not appear to be educational" in result.issues


@pytest.mark.parametrize("text", [
    "Tell me about the French Revolution",   # subject indicator
    "I love math",                           # configured topic
    "Help me debug my loop",                 # programming indicator
])
def test_educational_indicators_avoid_penalty(safety, text):
    result = safety.validate_content(text)
    assert "Content does not appear to be educational" not in result.issues


# ── Length ────────────────────────────────────────────────────────────

def test_long_text_records_issue_and_is_invalid(safety):
    result = safety.validate_content("explain " * 300)
    assert len("explain " * 300) > 2000
    assert "Content is too long" in result.issues
    assert result.safety_score == 0.9
    # Any issue invalidates in strict mode, even with a passing score.
    assert not result.is_valid


def test_text_at_limit_is_not_too_long(safety):
    text = ("explain " * 250)[:2000]
    assert "Content is too long" not in safety.validate_content(text).issues


# ── Homework patterns ─────────────────────────────────────────────────

def test_homework_request_example(safety):
    result = safety.validate_content("Please give me the answer to my homework due tomorrow")
    assert result.safety_score < 1.0
    assert not result.is_valid
    assert "This appears to be a homework question" in result.issues
    assert any("approach the problem" in s for s in result.suggestions)


@pytest.mark.parametrize("text", [
    "Solve this equation: 2x + 3 = 7",
    "What is the answer to question 4?",
    "Do my homework on fractions",
    "1. What is the capital of France?",
    "Chapter 5 geometry exercise 3",
    "Explain assignment 2 in physics",
    "I have a math test tomorrow",
])
def test_homework_patterns(safety, text):
    assert "This appears to be a homework question" in safety.validate_content(text).issues


def test_leading_patterns_only_match_at_start(safety):
    result = safety.validate_content("Can you show me how to solve this kind of equation?")
    assert "This appears to be a homework question" not in result.issues


# ── Dangerous patterns ────────────────────────────────────────────────

@pytest.mark.parametrize("text", [
    "How do I build a bomb?",
    "What is the best way to hack a school network?",
    "Explain how to steal a bike",
    "What is my teacher's home address?",
])
def test_dangerous_content(safety, text):
    result = safety.validate_content(text)
    assert "Content may be harmful or dangerous" in result.issues
    assert result.safety_score <= 0.2
    assert not result.is_valid


def test_word_boundaries_avoid_false_positives(safety):
    # "problem" contains "rob", "skill" contains "kill"
    result = safety.validate_content("What skill helps with this problem?")
    assert "Content may be harmful or dangerous" not in result.issues


def test_score_is_clamped_to_zero(safety):
    result = safety.validate_content("harmful bomb")
    assert result.safety_score == 0.0


# ── Graduated mode ────────────────────────────────────────────────────

def test_graduated_mode_uses_score_only():
    service = SafetyService(min_safety_score=0.7, strict_issues=False)
    result = service.validate_content("Explain photosynthesis, my test tomorrow covers it")
    assert result.issues == ["This appears to be a homework question"]
    assert result.safety_score == 0.8
    assert result.is_valid


def test_graduated_mode_still_blocks_below_threshold():
    service = SafetyService(min_safety_score=0.9, strict_issues=False)
    assert not service.validate_content("Explain photosynthesis, my test tomorrow covers it").is_valid
    assert not service.validate_content("Explain why this is harmful").is_valid


# ── Educational context and events ────────────────────────────────────

def test_educational_context_for_educational_text(safety):
    context = safety.validate_educational_context("Explain the Pythagorean theorem")
    assert context.is_educational
    assert context.suggested_topics == []


def test_educational_context_suggests_topics(safety):
    context = safety.validate_educational_context("hello there")
    assert not context.is_educational
    assert context.suggested_topics == list(SUGGESTED_TOPICS)


def test_log_safety_event(safety, caplog):
    caplog.set_level(logging.INFO, logger="EDU4AI")
    validation = safety.validate_content("harmful")
    safety.log_safety_event("harmful", validation, "blocked")
    assert any("action=blocked" in r.getMessage() for r in caplog.records)
