"""Scoring engine: page technical/content/overall scores and site aggregates.

Every function here is pure: the same issues or metrics always produce the
same score. Rounding follows the half-up convention (82.5 -> 83).
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from seoaudit.config import ScoringThresholds, default_thresholds
from seoaudit.constants import (
    CONTENT_ERROR_DEDUCTION,
    CONTENT_WEIGHT,
    MAX_SCORE,
    MIN_SCORE,
    SEVERITY_DEDUCTIONS,
    STARTING_SCORE,
    TECHNICAL_WEIGHT,
)
from seoaudit.models import (
    IssueBreakdown,
    IssueSeverity,
    PageResult,
    PageSeoMetrics,
    ScoreBreakdown,
    ScoreDeduction,
    SiteScoreSummary,
    SiteSeoScoreSummary,
    TechnicalIssue,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


def clamp_score(score: float) -> int:
    return int(max(MIN_SCORE, min(MAX_SCORE, score)))


def severity_points(severity: IssueSeverity) -> int:
    return SEVERITY_DEDUCTIONS[IssueSeverity(severity).value]


# =============================================================================
# Technical score
# =============================================================================

@dataclass(frozen=True)
class TechnicalScoreResult:
    technical_score: int
    deductions: tuple[ScoreDeduction, ...]


@dataclass(frozen=True)
class SeoScoreResult:
    final_score: int
    breakdown: tuple[IssueBreakdown, ...]


def calculate_technical_score(issues: Iterable[TechnicalIssue]) -> TechnicalScoreResult:
    """100 minus 10 per error and 5 per warning, clamped to [0, 100]."""
    score = STARTING_SCORE
    deductions = []

    for issue in issues:
        points = severity_points(issue.severity)
        score -= points
        deductions.append(ScoreDeduction(
            reason=issue.message,
            severity=issue.severity,
            points_deducted=points,
        ))

    return TechnicalScoreResult(technical_score=clamp_score(score), deductions=tuple(deductions))


def calculate_seo_score(issues: Iterable[TechnicalIssue]) -> SeoScoreResult:
    """Technical score plus deductions grouped by issue code.

    Codes appear in the breakdown in the order they were first seen.
    """
    issues = tuple(issues)
    counts: dict[str, list[int]] = {}

    for issue in issues:
        points = severity_points(issue.severity)
        entry = counts.setdefault(issue.code, [0, 0])
        entry[0] += 1
        entry[1] += points

    breakdown = tuple(
        IssueBreakdown(code=code, count=count, points_deducted=points)
        for code, (count, points) in counts.items()
    )
    return SeoScoreResult(
        final_score=calculate_technical_score(issues).technical_score,
        breakdown=breakdown,
    )


# =============================================================================
# Content score
# =============================================================================

@dataclass(frozen=True)
class ContentScoreRule:
    """A content rule: deduct ``points`` when ``check`` holds."""
    reason: str
    points: int
    check: Callable[[PageSeoMetrics], bool]


@dataclass(frozen=True)
class ContentScoreResult:
    content_score: int
    deductions: tuple[ScoreDeduction, ...]


def _low_alt_coverage(metrics: PageSeoMetrics, minimum: float) -> bool:
    coverage = metrics.image_alt_coverage_percent
    return coverage is not None and coverage < minimum


def build_content_rules(thresholds: ScoringThresholds = default_thresholds) -> tuple[ContentScoreRule, ...]:
    """Build the ordered content rule table for the given thresholds."""
    t = thresholds
    return (
        ContentScoreRule(
            reason="Missing title tag",
            points=t.missing_title_points,
            check=lambda m: m.title_length == 0,
        ),
        ContentScoreRule(
            reason=f"Title length not optimal (should be {t.title_min}-{t.title_max} characters)",
            points=t.title_length_points,
            check=lambda m: m.title_length > 0 and not t.title_min <= m.title_length <= t.title_max,
        ),
        ContentScoreRule(
            reason="Missing meta description",
            points=t.missing_meta_description_points,
            check=lambda m: m.meta_description_length == 0,
        ),
        ContentScoreRule(
            reason=f"Word count below {t.thin_content_words} (thin content)",
            points=t.thin_content_points,
            check=lambda m: m.word_count < t.thin_content_words,
        ),
        ContentScoreRule(
            reason="Multiple H1 tags found (should have only one)",
            points=t.multiple_h1_points,
            check=lambda m: m.h1_count > 1,
        ),
        ContentScoreRule(
            reason=f"Image alt text coverage below {t.min_alt_coverage_percent:g}%",
            points=t.low_alt_coverage_points,
            check=lambda m: _low_alt_coverage(m, t.min_alt_coverage_percent),
        ),
    )


CONTENT_SCORE_RULES = build_content_rules()


def calculate_content_score(
    metrics: PageSeoMetrics,
    rules: Sequence[ContentScoreRule] = CONTENT_SCORE_RULES,
) -> ContentScoreResult:
    """Apply every content rule (no short-circuit) and clamp to [0, 100]."""
    score = STARTING_SCORE
    deductions = []

    for rule in rules:
        if rule.check(metrics):
            score -= rule.points
            deductions.append(ScoreDeduction(
                reason=rule.reason,
                severity=IssueSeverity.ERROR if rule.points >= CONTENT_ERROR_DEDUCTION else IssueSeverity.WARNING,
                points_deducted=rule.points,
            ))

    return ContentScoreResult(content_score=clamp_score(score), deductions=tuple(deductions))


# =============================================================================
# Overall score
# =============================================================================

def calculate_overall_score(technical_score: int, content_score: int) -> ScoreBreakdown:
    """Weighted average of technical and content score."""
    overall = round_half_up(technical_score * TECHNICAL_WEIGHT + content_score * CONTENT_WEIGHT)
    return ScoreBreakdown(
        technical_score=technical_score,
        content_score=content_score,
        overall_score=overall,
    )


@dataclass(frozen=True)
class PageScore:
    """All scoring output for one page."""
    seo_score: int
    issue_breakdown: tuple[IssueBreakdown, ...]
    breakdown: Optional[ScoreBreakdown]
    technical_deductions: tuple[ScoreDeduction, ...]
    content_deductions: tuple[ScoreDeduction, ...] = ()


def score_page(
    issues: Sequence[TechnicalIssue],
    metrics: Optional[PageSeoMetrics],
    rules: Sequence[ContentScoreRule] = CONTENT_SCORE_RULES,
) -> PageScore:
    """Score one page.

    Without metrics (non-HTML documents) only the issue-based score is
    produced and the breakdown is None.
    """
    seo = calculate_seo_score(issues)
    technical = calculate_technical_score(issues)

    if metrics is None:
        return PageScore(
            seo_score=seo.final_score,
            issue_breakdown=seo.breakdown,
            breakdown=None,
            technical_deductions=technical.deductions,
        )

    content = calculate_content_score(metrics, rules)
    return PageScore(
        seo_score=seo.final_score,
        issue_breakdown=seo.breakdown,
        breakdown=calculate_overall_score(technical.technical_score, content.content_score),
        technical_deductions=technical.deductions,
        content_deductions=content.deductions,
    )


# =============================================================================
# Site aggregation
# =============================================================================

def calculate_site_score(pages: Sequence[PageResult]) -> SiteScoreSummary:
    """Mean page seo score (rounded) and issue counts over all pages."""
    if not pages:
        return SiteScoreSummary()

    total_score = 0
    total_issues = 0
    errors = 0
    warnings = 0

    for page in pages:
        total_score += page.seo_score
        total_issues += len(page.issues)
        errors += page.errors_count
        warnings += page.warnings_count

    return SiteScoreSummary(
        site_score=round_half_up(total_score / len(pages)),
        total_issues=total_issues,
        errors_count=errors,
        warnings_count=warnings,
    )


def calculate_site_seo_score(pages: Sequence[PageResult]) -> SiteSeoScoreSummary:
    """Average technical, content and overall score.

    Pages without a score breakdown are left out of the denominator.
    """
    scored = [page.score for page in pages if page.score is not None]
    if not scored:
        return SiteSeoScoreSummary()

    count = len(scored)
    return SiteSeoScoreSummary(
        average_technical_score=round_half_up(sum(s.technical_score for s in scored) / count),
        average_content_score=round_half_up(sum(s.content_score for s in scored) / count),
        average_overall_score=round_half_up(sum(s.overall_score for s in scored) / count),
        pages_scored=count,
    )
