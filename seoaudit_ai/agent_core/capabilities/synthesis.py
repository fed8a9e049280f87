from __future__ import annotations

"""Keyword-driven optimizers and cross-capability synthesis.

``content`` and ``meta`` require the ``keyword`` output. ``validation``,
``report`` and ``learning`` only *consume* other outputs: they run after
them when they are part of the plan, and work with whatever subset is
available. A consumed input can be

- a ``Success`` record: its output is used,
- a ``Failure`` record: the capability ran and failed,
- absent: the capability was not part of the plan.
"""

import logging
import re
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Mapping, Optional

from ..schemas.domain import CapabilityName, Failure, ResultRecord
from .base import Capability, CapabilityContext, CapabilityResult, output_of
from .builtin import ai_insights, page_of, recommendation, sort_recommendations

logger = logging.getLogger(__name__)

TITLE_MIN, TITLE_MAX = 30, 60
DESCRIPTION_MIN, DESCRIPTION_MAX = 150, 160
THIN_CONTENT_WORDS = 300


def _syllables(word: str) -> int:
    groups = re.findall(r"[aeiouy]+", word.lower())
    count = len(groups)
    if word.lower().endswith("e") and count > 1:
        count -= 1
    return max(count, 1)


def flesch_reading_ease(text: str) -> float:
    sentences = max(len([s for s in re.split(r"[.!?]+", text) if s.strip()]), 1)
    words = re.findall(r"[A-Za-z]+", text)
    if not words:
        return 0.0
    syllables = sum(_syllables(w) for w in words)
    score = 206.835 - 1.015 * (len(words) / sentences) - 84.6 * (syllables / len(words))
    return round(max(0.0, min(100.0, score)), 1)


def _primary_keyword(keyword: Dict[str, Any]) -> Optional[str]:
    primary = keyword.get("primary_keywords") or []
    return primary[0]["word"] if primary else None


def _status(text: str, low: int, high: int) -> str:
    if not text:
        return "missing"
    if len(text) < low:
        return "too_short"
    if len(text) > high:
        return "too_long"
    return "optimal"


@dataclass(frozen=True)
class ContentCapability(Capability):
    """
    Score readability and structure, and check where the primary keyword is
    placed (title, H1, first paragraph, meta description).
    """

    name: CapabilityName = CapabilityName.content

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        keyword = output_of(inputs, CapabilityName.keyword) or {}
        text = page["content"]["text"]
        paragraphs = page["content"]["paragraphs"]
        headings = page["headings"]
        word_count = page["content"]["word_count"]

        readability = flesch_reading_ease(text)
        long_paragraphs = sum(1 for p in paragraphs if len(p.split()) > 150)
        primary = _primary_keyword(keyword)
        placement = {}
        if primary:
            first_paragraph = paragraphs[0] if paragraphs else ""
            placement = {
                "title": primary in page.get("title", "").lower(),
                "h1": any(primary in h.lower() for h in headings.get("h1", [])),
                "first_paragraph": primary in first_paragraph.lower(),
                "meta_description": primary in page["meta"].get("description", "").lower(),
            }
        placement_score = round(100 * sum(placement.values()) / len(placement)) if placement else 0

        recs: List[Dict[str, Any]] = []
        if word_count < THIN_CONTENT_WORDS:
            recs.append(recommendation("content_length", "high",
                                       f"Expand content to at least {THIN_CONTENT_WORDS} words (currently {word_count})",
                                       "Thin content rarely ranks"))
        if readability and readability < 50:
            recs.append(recommendation("readability", "medium",
                                       f"Simplify sentences (reading ease {readability})",
                                       "Easier content keeps visitors engaged"))
        if not headings.get("h2"):
            recs.append(recommendation("content_structure", "medium", "Break content into sections with H2 headings",
                                       "Improves scannability and topical structure"))
        if long_paragraphs:
            recs.append(recommendation("content_structure", "low", f"Split {long_paragraphs} long paragraph(s)",
                                       "Improves readability"))
        for where, found in placement.items():
            if not found:
                recs.append(recommendation("keyword_placement", "medium",
                                           f"Use '{primary}' in the {where.replace('_', ' ')}",
                                           "Reinforces the page topic"))
        if not page["links"]["internal"]:
            recs.append(recommendation("internal_linking", "medium", "Add internal links to related pages",
                                       "Distributes authority and helps crawling"))

        ai = await ai_insights(
            ctx,
            (
                "Suggest content improvements for this page.\n"
                f"TITLE: {page.get('title', '')}\nPRIMARY KEYWORD: {primary}\n"
                f"CONTENT PREVIEW: {text[:2000]}"
            ),
            {"suggestions": [], "missing_topics": []},
        ) or {}

        return CapabilityResult(
            ok=True,
            output={
                "word_count": word_count,
                "readability": {"flesch_reading_ease": readability},
                "structure": {
                    "h1": len(headings.get("h1", [])),
                    "h2": len(headings.get("h2", [])),
                    "h3": len(headings.get("h3", [])),
                    "paragraphs": len(paragraphs),
                    "long_paragraphs": long_paragraphs,
                },
                "keyword_placement": {"keyword": primary, **placement, "score": placement_score},
                "internal_links": len(page["links"]["internal"]),
                "suggestions": list(ai.get("suggestions") or []),
                "missing_topics": list(ai.get("missing_topics") or []),
                "recommendations": sort_recommendations(recs),
            },
        )


def _fit(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    cut = text[: limit - 3].rsplit(" ", 1)[0].rstrip(" ,;:-|")
    return f"{cut}..."


@dataclass(frozen=True)
class MetaCapability(Capability):
    """
    Evaluate title, meta description and Open Graph tags, and propose
    optimized versions built around the primary keyword.
    """

    name: CapabilityName = CapabilityName.meta

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        keyword = output_of(inputs, CapabilityName.keyword) or {}
        primary = _primary_keyword(keyword)
        title = page.get("title", "")
        description = page["meta"].get("description", "")
        og = page["meta"].get("og", {})

        suggested_title = title or (page["headings"].get("h1") or [""])[0]
        if primary and primary not in suggested_title.lower():
            suggested_title = f"{primary.capitalize()} | {suggested_title}" if suggested_title else primary.capitalize()
        suggested_title = _fit(suggested_title, TITLE_MAX)

        suggested_description = description
        if not suggested_description or len(suggested_description) < DESCRIPTION_MIN:
            source = " ".join(page["content"]["paragraphs"]) or page["content"]["text"]
            suggested_description = (description + " " + source).strip() if description else source
        suggested_description = _fit(suggested_description, DESCRIPTION_MAX)

        ai = await ai_insights(
            ctx,
            (
                "Write an optimized title (30-60 characters) and meta description (150-160 characters).\n"
                f"CURRENT TITLE: {title}\nCURRENT DESCRIPTION: {description}\nPRIMARY KEYWORD: {primary}\n"
                f"CONTENT PREVIEW: {page['content']['text'][:1500]}"
            ),
            {"title": None, "description": None},
        ) or {}
        if ai.get("title"):
            suggested_title = _fit(str(ai["title"]), TITLE_MAX)
        if ai.get("description"):
            suggested_description = _fit(str(ai["description"]), DESCRIPTION_MAX)

        analysis = {
            "title": {"current": title, "length": len(title), "status": _status(title, TITLE_MIN, TITLE_MAX),
                      "optimized": suggested_title},
            "description": {"current": description, "length": len(description),
                            "status": _status(description, DESCRIPTION_MIN, DESCRIPTION_MAX),
                            "optimized": suggested_description},
            "open_graph": {key: bool(og.get(key)) for key in ("title", "description", "image", "url")},
            "keyword": primary,
            "ai_enhanced": bool(ai),
        }

        recs: List[Dict[str, Any]] = []
        for field_name, low, high in (("title", TITLE_MIN, TITLE_MAX), ("description", DESCRIPTION_MIN, DESCRIPTION_MAX)):
            status = analysis[field_name]["status"]
            if status == "missing":
                recs.append(recommendation(f"meta_{field_name}", "critical", f"Add a {field_name}",
                                           "Shown as the search result snippet",
                                           suggested=analysis[field_name]["optimized"]))
            elif status != "optimal":
                recs.append(recommendation(f"meta_{field_name}", "high",
                                           f"Adjust {field_name} length to {low}-{high} characters "
                                           f"(currently {analysis[field_name]['length']})",
                                           "Avoids truncation in search results",
                                           suggested=analysis[field_name]["optimized"]))
        missing_og = [k for k, present in analysis["open_graph"].items() if not present]
        if missing_og:
            recs.append(recommendation("open_graph", "low", f"Add Open Graph tags: {', '.join(missing_og)}",
                                       "Better previews when shared"))
        analysis["recommendations"] = sort_recommendations(recs)
        return CapabilityResult(ok=True, output=analysis)


def _availability(inputs: Mapping[CapabilityName, ResultRecord], names: List[CapabilityName]) -> Dict[str, str]:
    states = {}
    for name in names:
        record = inputs.get(name)
        if record is None:
            states[name.value] = "not_requested"
        elif isinstance(record, Failure):
            states[name.value] = "failed"
        else:
            states[name.value] = "available"
    return states


VALIDATION_INPUTS = [CapabilityName.keyword, CapabilityName.content, CapabilityName.meta, CapabilityName.schema]


@dataclass(frozen=True)
class ValidationCapability(Capability):
    """
    Check the page against SEO compliance rules and cross-check the other
    analyzers' suggestions for consistency.
    """

    name: CapabilityName = CapabilityName.validation

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        meta = output_of(inputs, CapabilityName.meta)
        keyword = output_of(inputs, CapabilityName.keyword)
        schema = output_of(inputs, CapabilityName.schema)

        critical: List[str] = []
        warnings: List[str] = []
        title = page.get("title", "")
        description = page["meta"].get("description", "")
        h1 = page["headings"].get("h1", [])
        if not title:
            critical.append("Missing title tag")
        elif not TITLE_MIN <= len(title) <= TITLE_MAX:
            warnings.append(f"Title length {len(title)} outside {TITLE_MIN}-{TITLE_MAX}")
        if not description:
            critical.append("Missing meta description")
        elif not DESCRIPTION_MIN <= len(description) <= DESCRIPTION_MAX:
            warnings.append(f"Meta description length {len(description)} outside {DESCRIPTION_MIN}-{DESCRIPTION_MAX}")
        if not h1:
            critical.append("Missing H1 heading")
        elif len(h1) > 1:
            warnings.append(f"Multiple H1 headings ({len(h1)})")
        if page["content"]["word_count"] < THIN_CONTENT_WORDS:
            warnings.append("Thin content")
        if h1 and title and h1[0].strip().lower() == title.strip().lower():
            warnings.append("H1 duplicates the title")

        consistency: List[str] = []
        primary = _primary_keyword(keyword) if keyword else None
        if meta and primary:
            if primary not in meta["title"]["optimized"].lower():
                consistency.append(f"Optimized title does not contain the primary keyword '{primary}'")
        if meta:
            for field_name, high in (("title", TITLE_MAX), ("description", DESCRIPTION_MAX)):
                if len(meta[field_name]["optimized"]) > high:
                    consistency.append(f"Optimized {field_name} exceeds {high} characters")
        if schema:
            for problem in schema.get("validation", []):
                warnings.append(f"Incomplete {problem['type']} schema")

        score = max(0, 100 - 20 * len(critical) - 5 * len(warnings) - 5 * len(consistency))
        status = "fail" if critical else "warning" if warnings or consistency else "pass"
        return CapabilityResult(
            ok=True,
            output={
                "status": status,
                "quality_score": score,
                "critical_issues": critical,
                "warnings": warnings,
                "consistency_issues": consistency,
                "inputs": _availability(inputs, VALIDATION_INPUTS),
            },
        )


REPORT_INPUTS = [
    CapabilityName.keyword,
    CapabilityName.technical,
    CapabilityName.schema,
    CapabilityName.image,
    CapabilityName.content,
    CapabilityName.meta,
    CapabilityName.validation,
]


@dataclass(frozen=True)
class ReportCapability(Capability):
    """
    Merge the recommendations of every available analyzer into one
    prioritized report with an overall score.
    """

    name: CapabilityName = CapabilityName.report

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        recs: List[Dict[str, Any]] = []
        scores: Dict[str, float] = {}
        for name in REPORT_INPUTS:
            output = output_of(inputs, name)
            if output is None:
                continue
            for rec in output.get("recommendations", []):
                recs.append({**rec, "source": name.value})
            if name == CapabilityName.technical:
                scores["technical"] = output["score"]
            elif name == CapabilityName.validation:
                scores["validation"] = output["quality_score"]
            elif name == CapabilityName.content:
                scores["keyword_placement"] = output["keyword_placement"]["score"]

        ordered = sort_recommendations(recs)
        by_priority = Counter(r["priority"] for r in ordered)
        if scores:
            overall = round(sum(scores.values()) / len(scores))
        else:
            overall = max(0, 100 - 15 * by_priority["critical"] - 8 * by_priority["high"] - 3 * by_priority["medium"])

        return CapabilityResult(
            ok=True,
            output={
                "url": page.get("url", ctx.target),
                "title": page.get("title", ""),
                "overall_score": overall,
                "scores": scores,
                "summary": {
                    "total_recommendations": len(ordered),
                    **{p: by_priority[p] for p in ("critical", "high", "medium", "low")},
                },
                "recommendations": ordered,
                "sections": _availability(inputs, REPORT_INPUTS),
                "generated_at": datetime.now(timezone.utc).isoformat(),
            },
        )


class PatternStore:
    """Bounded in-memory store of observations across audits.

    Only the most recent ``max_patterns`` entries are kept.
    """

    def __init__(self, max_patterns: int = 100) -> None:
        self._patterns: Deque[Dict[str, Any]] = deque(maxlen=max_patterns)

    def add(self, pattern: Dict[str, Any]) -> None:
        self._patterns.append(pattern)

    def __len__(self) -> int:
        return len(self._patterns)

    def snapshot(self) -> List[Dict[str, Any]]:
        return list(self._patterns)


@dataclass(frozen=True)
class LearningCapability(Capability):
    """
    Record what this audit found and report recurring patterns across the
    audits seen by this process.
    """

    name: CapabilityName = CapabilityName.learning
    store: PatternStore = field(default_factory=PatternStore)

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        keyword = output_of(inputs, CapabilityName.keyword) or {}
        schema = output_of(inputs, CapabilityName.schema) or {}
        content = output_of(inputs, CapabilityName.content) or {}
        meta = output_of(inputs, CapabilityName.meta) or {}
        report = output_of(inputs, CapabilityName.report) or {}

        pattern = {
            "url": page.get("url", ctx.target),
            "keywords": [kw["word"] for kw in keyword.get("primary_keywords", [])[:5]],
            "schema_types": schema.get("detected", []),
            "word_count": content.get("word_count", page["content"]["word_count"]),
            "title_status": (meta.get("title") or {}).get("status"),
            "description_status": (meta.get("description") or {}).get("status"),
            "issue_types": sorted({r["type"] for r in report.get("recommendations", [])}),
            "overall_score": report.get("overall_score"),
            "recorded_at": datetime.now(timezone.utc).isoformat(),
        }
        self.store.add(pattern)
        patterns = self.store.snapshot()
        logger.debug(f"[{ctx.task_id}] Learning store holds {len(patterns)} pattern(s)")

        keyword_counts = Counter(w for p in patterns for w in p["keywords"])
        issue_counts = Counter(t for p in patterns for t in p["issue_types"])
        scored = [p["overall_score"] for p in patterns if p["overall_score"] is not None]
        return CapabilityResult(
            ok=True,
            output={
                "pattern": pattern,
                "patterns_learned": len(patterns),
                "insights": {
                    "common_keywords": [w for w, _ in keyword_counts.most_common(10)],
                    "common_issues": [{"type": t, "count": n} for t, n in issue_counts.most_common(5)],
                    "average_score": round(sum(scored) / len(scored), 1) if scored else None,
                },
            },
        )
