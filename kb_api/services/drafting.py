from __future__ import annotations

from pydantic import BaseModel, Field

from ..models.documents import Document

VERSION_EXCERPT_CHARS = 1000
SUMMARY_FALLBACK = "Summary not available"


class DraftSuggestion(BaseModel):
    suggested_title: str | None = None
    suggested_content: str | None = None
    changes_summary: str | None = None
    requires_review: list[str] = Field(default_factory=list)


class DocumentSummary(BaseModel):
    summary: str | None = None


class VersionChange(BaseModel):
    type: str | None = None  # addition, deletion or modification
    description: str = ""
    location: str | None = None
    impact: str | None = None


class BreakingChange(BaseModel):
    description: str = ""
    reason: str | None = None


class VersionAnalysis(BaseModel):
    summary: str | None = None
    key_changes: list[VersionChange] = Field(default_factory=list)
    breaking_changes: list[BreakingChange] = Field(default_factory=list)
    overall_impact: str | None = None  # minor, moderate or major
    recommendation: str | None = None


DRAFT_TMPL = """This document may be outdated. Draft an updated version.

CURRENT DOCUMENT:
Title: {title}
Content: {content}

TASK:
1. Identify what information might be outdated
2. Suggest updated content while maintaining structure
3. Flag areas needing manual review

Return JSON with keys:
- suggested_title
- suggested_content (full updated body, same structure as the original)
- changes_summary (one short paragraph)
- requires_review (list of sections that need a human check)
"""

SUMMARY_TMPL = """You are a document summarization expert. Analyze the following document and generate a concise, professional summary (2-3 sentences max) that captures the key points and purpose.

Document Title: {title}
Document Type: {type}
Tags: {tags}

Content:
{content}

Return JSON with a single key "summary". Provide ONLY the summary, no additional commentary.
"""

COMPARE_TMPL = """Analyze changes between two document versions and identify important differences.

PREVIOUS VERSION (v{previous_version}):
Title: {previous_title}
Content: {previous_content}

CURRENT VERSION (v{current_version}):
Title: {current_title}
Content: {current_content}

TASK:
1. Identify key changes (additions, deletions, modifications)
2. Flag breaking changes (information removed, contradictions, policy changes)
3. Assess impact level (minor, moderate, major)
4. Provide change summary

Return JSON with keys: summary, key_changes (type, description, location, impact),
breaking_changes (description, reason), overall_impact, recommendation.
"""


def build_draft_prompt(title: str, content: str) -> str:
    return DRAFT_TMPL.format(title=title, content=content)


def build_summary_prompt(document: Document) -> str:
    return SUMMARY_TMPL.format(
        title=document.title,
        type=document.type or "General",
        tags=", ".join(document.tags or []) or "None",
        content=document.content or "",
    )


def build_version_comparison_prompt(current: Document, previous: Document) -> str:
    return COMPARE_TMPL.format(
        previous_version=previous.version or 1,
        previous_title=previous.title,
        previous_content=(previous.content or "")[:VERSION_EXCERPT_CHARS],
        current_version=current.version or 1,
        current_title=current.title,
        current_content=(current.content or "")[:VERSION_EXCERPT_CHARS],
    )


def draft_title(suggestion: DraftSuggestion, source_title: str) -> str:
    title = (suggestion.suggested_title or "").strip() or source_title
    return f"[DRAFT] {title}"


def draft_ai_summary(suggestion: DraftSuggestion) -> str:
    changes = (suggestion.changes_summary or "").strip() or "not provided"
    return f"AI-generated draft update. Changes: {changes}"
