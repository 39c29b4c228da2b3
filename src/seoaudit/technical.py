"""Technical SEO audit engine.

Audits are plain functions taking an AuditInputs bundle and returning the
issues they found. AUDIT_RULES lists them in evaluation order together with
the passed-check label they earn and a predicate telling whether their
optional inputs are available. A rule whose inputs are missing abstains: it
neither reports issues nor earns a passed check.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from seoaudit.markup import find_meta
from seoaudit.models import (
    AuditResult,
    IssueSeverity,
    LinkStatus,
    RedirectHop,
    TechnicalIssue,
)

logger = logging.getLogger(__name__)

ERROR = IssueSeverity.ERROR
WARNING = IssueSeverity.WARNING

# A redirect history longer than this is reported as an error
REDIRECT_CHAIN_ERROR_HOPS = 2


@dataclass(frozen=True)
class AuditInputs:
    """Everything the audits may look at for one page.

    ``page_url`` is the address the markup was served from (after redirects)
    and is the base for relative URLs. Issues are attributed to
    ``report_url`` when given, otherwise to ``page_url``.

    ``outgoing_links``, ``redirect_history`` and ``meta_robots_content`` are
    optional out-of-band signals; None means "not collected".
    """
    page_url: str
    soup: BeautifulSoup
    report_url: Optional[str] = None
    outgoing_links: Optional[Sequence[LinkStatus]] = None
    redirect_history: Optional[Sequence[RedirectHop]] = None
    meta_robots_content: Optional[str] = None
    is_internal_page: bool = True


def _issue(inputs: AuditInputs, code: str, severity: IssueSeverity, message: str) -> TechnicalIssue:
    return TechnicalIssue(
        code=code, severity=severity, message=message,
        page_url=inputs.report_url or inputs.page_url,
    )


def audit_title(inputs: AuditInputs) -> list[TechnicalIssue]:
    title = inputs.soup.find("title")
    if title is None:
        return [_issue(inputs, "MISSING_TITLE", ERROR, "Page is missing <title> tag")]
    if not title.get_text().strip():
        return [_issue(inputs, "EMPTY_TITLE", ERROR, "Page has empty <title> tag")]
    return []


def audit_meta_description(inputs: AuditInputs) -> list[TechnicalIssue]:
    tag = find_meta(inputs.soup, "description")
    if tag is None:
        return [_issue(inputs, "MISSING_META_DESCRIPTION", WARNING, "Page is missing meta description")]
    if not (tag.get("content") or "").strip():
        return [_issue(
            inputs, "EMPTY_META_DESCRIPTION", WARNING,
            "Page has empty meta description content attribute",
        )]
    return []


def audit_h1(inputs: AuditInputs) -> list[TechnicalIssue]:
    h1_count = len(inputs.soup.find_all("h1"))
    if h1_count > 1:
        return [_issue(
            inputs, "MULTIPLE_H1_TAGS", WARNING,
            f"Page has {h1_count} H1 tags (should have exactly 1)",
        )]
    return []


def audit_canonical(inputs: AuditInputs) -> list[TechnicalIssue]:
    canonical = inputs.soup.find("link", rel="canonical")
    if canonical is None:
        return [_issue(inputs, "MISSING_CANONICAL", WARNING, "Page is missing canonical link")]

    href = (canonical.get("href") or "").strip()
    if not href:
        return []

    try:
        canonical_url = urljoin(inputs.page_url, href)
        parsed = urlparse(canonical_url)
        canonical_host = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        canonical_host = None
    if not canonical_host:
        return [_issue(inputs, "INVALID_CANONICAL", ERROR, f"Invalid canonical URL: {href}")]

    if canonical_host != urlparse(inputs.page_url).hostname:
        return [_issue(
            inputs, "CROSS_DOMAIN_CANONICAL", ERROR,
            f"Canonical points to different domain: {canonical_url}",
        )]
    return []


def audit_broken_links(inputs: AuditInputs) -> list[TechnicalIssue]:
    issues = []
    for link in inputs.outgoing_links or ():
        if 400 <= link.status_code < 500:
            issues.append(_issue(
                inputs, "BROKEN_LINK_4XX", WARNING,
                f"Link returns {link.status_code} status: {link.url}",
            ))
        elif link.status_code >= 500:
            issues.append(_issue(
                inputs, "BROKEN_LINK_5XX", ERROR,
                f"Link returns {link.status_code} status: {link.url}",
            ))
    return issues


def audit_redirect_chain(inputs: AuditInputs) -> list[TechnicalIssue]:
    history = inputs.redirect_history or ()
    chain_length = len(history)
    if chain_length <= 1:
        return []
    severity = ERROR if chain_length > REDIRECT_CHAIN_ERROR_HOPS else WARNING
    return [_issue(
        inputs, "REDIRECT_CHAIN", severity,
        f"Redirect chain detected: {chain_length} redirects leading to {history[-1].to_url}",
    )]


def audit_noindex(inputs: AuditInputs) -> list[TechnicalIssue]:
    if "noindex" not in (inputs.meta_robots_content or "").lower():
        return []
    if inputs.is_internal_page:
        return [_issue(inputs, "NOINDEX_INTERNAL_PAGE", ERROR, "Internal page has noindex directive")]
    return [_issue(inputs, "NOINDEX_PAGE", WARNING, "Page has noindex directive")]


@dataclass(frozen=True)
class AuditRule:
    """One row of the audit rule table."""
    label: str
    check: Callable[[AuditInputs], list[TechnicalIssue]]
    applies: Callable[[AuditInputs], bool] = lambda inputs: True


AUDIT_RULES: tuple[AuditRule, ...] = (
    AuditRule("title", audit_title),
    AuditRule("meta-description", audit_meta_description),
    AuditRule("h1", audit_h1),
    AuditRule("canonical", audit_canonical),
    AuditRule(
        "broken-links", audit_broken_links,
        applies=lambda inputs: inputs.outgoing_links is not None,
    ),
    AuditRule(
        "redirect-chains", audit_redirect_chain,
        applies=lambda inputs: bool(inputs.redirect_history),
    ),
    AuditRule(
        "noindex", audit_noindex,
        applies=lambda inputs: inputs.meta_robots_content is not None,
    ),
)


class TechnicalAuditRunner:
    """Runs every applicable audit rule against a page."""

    def __init__(self, rules: Sequence[AuditRule] = AUDIT_RULES):
        self.rules = tuple(rules)

    def run_all_audits(self, inputs: AuditInputs) -> AuditResult:
        """Run the audits for one page.

        Args:
            inputs: Parsed page plus optional crawl-time signals

        Returns:
            AuditResult with all issues (rule order) and passed check labels
        """
        issues: list[TechnicalIssue] = []
        passed: list[str] = []

        for rule in self.rules:
            if not rule.applies(inputs):
                continue
            try:
                found = rule.check(inputs)
            except Exception as e:
                # A rule that cannot evaluate abstains
                logger.warning(f"Audit '{rule.label}' could not evaluate {inputs.page_url}: {e}")
                continue
            if found:
                issues.extend(found)
            else:
                passed.append(rule.label)

        return AuditResult(
            url=inputs.report_url or inputs.page_url,
            issues=tuple(issues),
            passed_checks=tuple(passed),
        )


_default_runner = TechnicalAuditRunner()


def run_audits(inputs: AuditInputs) -> AuditResult:
    """Run the default rule table against one page."""
    return _default_runner.run_all_audits(inputs)
