"""
SAFETY SERVICE MODULE
=====================

Scores text for how appropriate it is in a tutoring conversation. Used twice per
chat request: once on the student's message (before any provider is called) and
once on the generated reply (before it is stored or returned).

SCORING:
  Start at 1.0 and subtract a fixed penalty for each check that fires:
    - blocked keyword present           -0.5
    - no educational indicator          -0.3
    - longer than 2000 characters       -0.1
    - looks like a homework request     -0.2
    - matches a dangerous pattern       -0.8
  The result is clamped to [0, 1]. Every check that fires also records an issue
  and a suggestion for the student.

VALIDITY:
  In strict mode (SAFETY_STRICT_ISSUES=true, the default) a message is valid only
  if its score reaches MIN_SAFETY_SCORE and no issue was recorded at all. With
  strict mode off, only the score is compared with the threshold.

Everything here is local pattern matching; there is no external moderation API.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.models import EducationalContext, SafetyValidation
from config import (
    BLOCKED_KEYWORDS,
    EDUCATIONAL_TOPICS,
    MAX_SAFE_CONTENT_LENGTH,
    MIN_SAFETY_SCORE,
    SAFETY_STRICT_ISSUES,
)

logger = logging.getLogger("EDU4AI")


# ==============================================================================
# PENALTIES
# ==============================================================================

BLOCKED_KEYWORD_PENALTY = 0.5
NON_EDUCATIONAL_PENALTY = 0.3
TOO_LONG_PENALTY = 0.1
HOMEWORK_PENALTY = 0.2
DANGEROUS_CONTENT_PENALTY = 0.8

# ==============================================================================
# INDICATOR WORD LISTS
# ==============================================================================
# All matching is substring matching on lowercased text, so "how" also matches "show".

EDUCATIONAL_KEYWORDS = (
    "learn", "study", "understand", "explain", "how", "why", "what",
    "solve", "calculate", "define", "describe", "analyze", "compare",
    "example", "concept", "theory", "practice", "homework", "assignment",
    "question", "problem", "formula", "equation", "method", "step",
)

SUBJECT_INDICATORS = (
    # Math
    "equation", "solve", "calculate", "mathematics", "algebra", "geometry",
    "calculus", "statistics", "probability", "theorem", "proof",
    # Science
    "experiment", "hypothesis", "theory", "molecule", "atom", "chemistry",
    "physics", "biology", "evolution", "ecosystem", "cell", "dna",
    # Language arts
    "grammar", "sentence", "paragraph", "essay", "literature", "poem",
    "metaphor", "symbolism", "character", "plot", "theme",
    # History
    "historical", "century", "war", "revolution", "civilization", "culture",
    "empire", "democracy", "constitution",
    # Programming
    "code", "function", "variable", "algorithm", "programming", "software",
    "debug", "syntax", "loop", "array", "object",
)

SUGGESTED_TOPICS = (
    "Mathematics (algebra, geometry, calculus)",
    "Science (biology, chemistry, physics)",
    "Literature and Language Arts",
    "History and Social Studies",
    "Programming and Computer Science",
    "Foreign Languages",
    "Art and Music Theory",
    "Study Skills and Learning Strategies",
)

# ==============================================================================
# PATTERN FAMILIES
# ==============================================================================

# Matched against the original text.
HOMEWORK_PATTERNS = (
    re.compile(r"^solve\s+this", re.IGNORECASE),
    re.compile(r"^answer\s+this", re.IGNORECASE),
    re.compile(r"^what\s+is\s+the\s+answer\s+to", re.IGNORECASE),
    re.compile(r"^do\s+my\s+homework", re.IGNORECASE),
    re.compile(r"^complete\s+this\s+for\s+me", re.IGNORECASE),
    re.compile(r"^give\s+me\s+the\s+solution", re.IGNORECASE),
    re.compile(r"^\d+\.\s*.*\?\s*$", re.MULTILINE),  # numbered questions
    re.compile(r"chapter\s+\d+.*exercise", re.IGNORECASE),
    re.compile(r"assignment\s+\d+", re.IGNORECASE),
    re.compile(r"due\s+tomorrow", re.IGNORECASE),
    re.compile(r"test\s+tomorrow", re.IGNORECASE),
)

# Matched against the lowercased text.
DANGEROUS_PATTERNS = (
    # Violence and harm
    re.compile(r"\b(kill|murder|suicide|self.?harm|hurt.*yourself)\b", re.IGNORECASE),
    re.compile(r"\b(bomb|explosive|weapon|gun|knife)\b", re.IGNORECASE),
    # Illegal activities
    re.compile(r"\b(drugs|illegal.*substance|steal|rob|fraud)\b", re.IGNORECASE),
    re.compile(r"\b(hack|crack|pirate|bypass.*security)\b", re.IGNORECASE),
    # Inappropriate content
    re.compile(r"\b(adult.*content|sexual|explicit)\b", re.IGNORECASE),
    # Personal information requests
    re.compile(r"\b(home.*address|phone.*number|social.*security|credit.*card)\b", re.IGNORECASE),
)


# ==============================================================================
# SAFETY SERVICE CLASS
# ==============================================================================

class SafetyService:
    """
    Stateless scorer. The keyword sets and thresholds are fixed at construction;
    by default they come from config so every instance behaves the same way.
    """

    def __init__(
        self,
        blocked_keywords: Optional[Iterable[str]] = None,
        educational_topics: Optional[Iterable[str]] = None,
        min_safety_score: float = MIN_SAFETY_SCORE,
        strict_issues: bool = SAFETY_STRICT_ISSUES,
    ):
        if blocked_keywords is None:
            blocked_keywords = BLOCKED_KEYWORDS
        if educational_topics is None:
            educational_topics = EDUCATIONAL_TOPICS
        # dict.fromkeys keeps the configured order (reported issues read naturally).
        self.blocked_keywords = list(dict.fromkeys(k.lower() for k in blocked_keywords if k))
        self.educational_topics = list(dict.fromkeys(t.lower() for t in educational_topics if t))
        self.min_safety_score = min_safety_score
        self.strict_issues = strict_issues

    def validate_content(self, content: str) -> SafetyValidation:
        """Score content and decide whether it may be sent to (or returned from) a provider."""
        content_lower = content.lower()
        safety_score = 1.0
        issues: List[str] = []
        suggestions: List[str] = []

        found_blocked = self.find_blocked_keywords(content_lower)
        if found_blocked:
            safety_score -= BLOCKED_KEYWORD_PENALTY
            issues.append(f"Contains inappropriate content: {', '.join(found_blocked)}")
            suggestions.append("Please rephrase your question focusing on educational content.")

        if not self.is_educational_content(content_lower):
            safety_score -= NON_EDUCATIONAL_PENALTY
            issues.append("Content does not appear to be educational")
            suggestions.append(
                "Please ask questions related to academic subjects like math, science, "
                "literature, or other learning topics."
            )

        if len(content) > MAX_SAFE_CONTENT_LENGTH:
            safety_score -= TOO_LONG_PENALTY
            issues.append("Content is too long")
            suggestions.append("Please shorten your question to be more specific.")

        if self.detect_homework_pattern(content):
            safety_score -= HOMEWORK_PENALTY
            issues.append("This appears to be a homework question")
            suggestions.append(
                "Instead of asking for the answer, ask how to approach the problem "
                "or explain concepts you need help understanding."
            )

        if self.detect_dangerous_content(content_lower):
            safety_score -= DANGEROUS_CONTENT_PENALTY
            issues.append("Content may be harmful or dangerous")
            suggestions.append("Please focus on safe, educational topics.")

        # Clamp, and round so 1.0 - 0.3 - 0.1 reads 0.6 and not 0.6000000000000001.
        safety_score = round(min(1.0, max(0.0, safety_score)), 2)

        is_valid = safety_score >= self.min_safety_score
        if self.strict_issues:
            is_valid = is_valid and not issues

        logger.info(
            "Content safety validation | score=%.2f valid=%s issues=%d length=%d",
            safety_score, is_valid, len(issues), len(content),
        )

        return SafetyValidation(
            is_valid=is_valid,
            safety_score=safety_score,
            issues=issues,
            suggestions=suggestions,
        )

    # ------------------------------------------------------------------------------
    # INDIVIDUAL CHECKS
    # ------------------------------------------------------------------------------

    def find_blocked_keywords(self, content_lower: str) -> List[str]:
        return [keyword for keyword in self.blocked_keywords if keyword in content_lower]

    def is_educational_content(self, content_lower: str) -> bool:
        """True if the lowercased text contains any educational keyword, topic or subject indicator."""
        if any(keyword in content_lower for keyword in EDUCATIONAL_KEYWORDS):
            return True
        if any(topic in content_lower for topic in self.educational_topics):
            return True
        return any(indicator in content_lower for indicator in SUBJECT_INDICATORS)

    def detect_homework_pattern(self, content: str) -> bool:
        return any(pattern.search(content) for pattern in HOMEWORK_PATTERNS)

    def detect_dangerous_content(self, content_lower: str) -> bool:
        return any(pattern.search(content_lower) for pattern in DANGEROUS_PATTERNS)

    # ------------------------------------------------------------------------------
    # EDUCATIONAL CONTEXT AND EVENT LOGGING
    # ------------------------------------------------------------------------------

    def validate_educational_context(self, content: str) -> EducationalContext:
        """Say whether content is educational; if not, list the subjects the tutor can help with."""
        is_educational = self.is_educational_content(content.lower())
        return EducationalContext(
            is_educational=is_educational,
            suggested_topics=[] if is_educational else list(SUGGESTED_TOPICS),
        )

    def log_safety_event(self, content: str, validation: SafetyValidation, action: str) -> None:
        """Record what happened to a checked message (e.g. "blocked", "validated")."""
        logger.info(
            "Safety event | action=%s score=%.2f valid=%s issues=%d length=%d timestamp=%s",
            action,
            validation.safety_score,
            validation.is_valid,
            len(validation.issues),
            len(content),
            datetime.now(timezone.utc).isoformat(),
        )
