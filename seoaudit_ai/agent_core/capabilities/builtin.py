from __future__ import annotations

"""Page-level analysis capabilities.

``crawl`` produces the ``PageData`` every other capability reads. The
analyzers in this module (keyword, technical, schema, image) only depend on
``crawl`` and run concurrently in the same stage.

Each analyzer is a deterministic heuristic; when a text generator is
configured, a model answer is merged in as additional insight. A failed or
missing model never fails the capability.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

from ..schemas.domain import CapabilityName, ResultRecord
from .base import Capability, CapabilityContext, CapabilityResult, output_of

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}

SECURITY_HEADERS = [
    "content-security-policy",
    "strict-transport-security",
    "x-frame-options",
    "x-content-type-options",
    "referrer-policy",
]

STOPWORDS = frozenset(
    """
    a about above after again all also am an and any are as at be because been before being below between
    both but by can could did do does doing down during each few for from further had has have having he her
    here hers him his how i if in into is it its just more most my no nor not now of off on once only or
    other our ours out over own same she should so some such than that the their them then there these they
    this those through to too under until up very was we were what when where which while who whom why will
    with would you your yours our us get got one two new also may use used using via per
    """.split()
)


def recommendation(type_: str, priority: str, message: str, impact: str = "", **extra: Any) -> Dict[str, Any]:
    rec = {"type": type_, "priority": priority, "message": message, "impact": impact}
    rec.update(extra)
    return rec


def sort_recommendations(recs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(recs, key=lambda r: PRIORITY_ORDER.get(str(r.get("priority")), 99))


def words_of(text: str) -> List[str]:
    return re.findall(r"[a-z0-9][a-z0-9'-]*[a-z0-9]|[a-z]", text.lower())


def page_of(inputs: Mapping[CapabilityName, ResultRecord]) -> Dict[str, Any]:
    """Return the crawl output; hard dependencies are guaranteed present by the executor."""
    page = output_of(inputs, CapabilityName.crawl)
    if page is None:
        raise ValueError("crawl data is required")
    return page


async def ai_insights(ctx: CapabilityContext, prompt: str, default: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return a model answer shaped like ``default``, or ``None`` when unavailable."""
    generator = getattr(ctx.deps, "text_generator", None)
    if generator is None or not getattr(generator, "available", False):
        return None
    try:
        return await generator.generate_json(prompt, default)
    except Exception as e:
        logger.warning(f"[{ctx.task_id}] AI insight unavailable, using heuristics only: {e}")
        return None


@dataclass(frozen=True)
class CrawlCapability(Capability):
    """
    Fetch the target page and extract the structured ``PageData``.

    Delegates to the ``fetcher`` dependency (``crawler.PageFetcher``). Fetch
    errors propagate to the executor, which records them as a failure; as
    ``crawl`` is foundational, that aborts the target.
    """

    name: CapabilityName = CapabilityName.crawl

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        fetcher = getattr(ctx.deps, "fetcher", None)
        if fetcher is None:
            return CapabilityResult(ok=False, output={"error": "page fetcher not configured"})
        page = await fetcher.fetch(ctx.target)
        return CapabilityResult(ok=True, output=dict(page))


@dataclass(frozen=True)
class KeywordCapability(Capability):
    """
    Identify the page's primary keywords and keyword opportunities.

    Heuristics: term frequency over the body text (stopwords removed), keyword
    density, title coverage and frequent two-word phrases as long-tail
    candidates. The model, when available, adds missing/semantic keywords and
    the search intent.
    """

    name: CapabilityName = CapabilityName.keyword

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        words = words_of(page["content"]["text"])
        total = max(len(words), 1)
        terms = [w for w in words if len(w) > 2 and w not in STOPWORDS and not w.isdigit()]
        counts = Counter(terms)

        primary = [
            {"word": word, "count": count, "density": round(count / total * 100, 2)}
            for word, count in counts.most_common(10)
        ]
        density = {
            kw["word"]: {
                "count": kw["count"],
                "density": kw["density"],
                "recommendation": "increase" if kw["count"] < 3 else "decrease" if kw["density"] > 3.0 else "optimal",
            }
            for kw in primary
        }
        bigrams = Counter(
            f"{a} {b}" for a, b in zip(words, words[1:]) if a not in STOPWORDS and b not in STOPWORDS and a != b
        )
        long_tail = [phrase for phrase, n in bigrams.most_common(8) if n > 1]

        title = page.get("title", "").lower()
        present = [kw["word"] for kw in primary[:5] if kw["word"] in title]
        missing_from_title = [kw["word"] for kw in primary[:5] if kw["word"] not in title]

        ai = await ai_insights(
            ctx,
            (
                "Analyze this webpage for SEO keyword opportunities.\n"
                f"TITLE: {page.get('title', '')}\nURL: {page.get('url', ctx.target)}\n"
                f"HEADINGS: {', '.join(page['headings'].get('h1', []) + page['headings'].get('h2', []))}\n"
                f"TOP TERMS: {', '.join(kw['word'] for kw in primary)}\n"
                f"CONTENT PREVIEW: {page['content']['text'][:2000]}"
            ),
            {"missing_keywords": [], "semantic_keywords": [], "search_intent": None},
        ) or {}

        analysis = {
            "primary_keywords": primary,
            "keyword_density": density,
            "long_tail_suggestions": long_tail,
            "title_keyword_usage": {"present": present, "missing": missing_from_title},
            "missing_keywords": list(ai.get("missing_keywords") or []),
            "semantic_keywords": list(ai.get("semantic_keywords") or []),
            "search_intent": ai.get("search_intent"),
            "ai_enhanced": bool(ai),
        }

        recs: List[Dict[str, Any]] = []
        if not primary:
            recs.append(recommendation("keyword_content", "high", "Page has too little text to target any keyword",
                                       "Search engines cannot infer the topic of the page"))
        if analysis["missing_keywords"]:
            recs.append(recommendation("keyword_gap", "high",
                                       f"Add missing keywords: {', '.join(map(str, analysis['missing_keywords'][:3]))}",
                                       "Improves keyword relevance and search visibility"))
        if primary and not present:
            recs.append(recommendation("title_keyword", "high",
                                       f"Use the primary keyword '{primary[0]['word']}' in the title",
                                       "Aligns the title with the page topic"))
        low = [kw for kw, info in density.items() if info["recommendation"] == "increase"]
        if low:
            recs.append(recommendation("keyword_density", "medium", f"Increase usage of: {', '.join(low[:2])}",
                                       "Better keyword targeting in content"))
        stuffed = [kw for kw, info in density.items() if info["recommendation"] == "decrease"]
        if stuffed:
            recs.append(recommendation("keyword_stuffing", "medium", f"Reduce repetition of: {', '.join(stuffed[:2])}",
                                       "Avoids over-optimization signals"))
        if analysis["semantic_keywords"]:
            recs.append(recommendation("semantic_keywords", "medium",
                                       f"Include semantic variations: {', '.join(map(str, analysis['semantic_keywords'][:3]))}",
                                       "Improves topical relevance"))
        analysis["recommendations"] = sort_recommendations(recs)
        return CapabilityResult(ok=True, output=analysis)


@dataclass(frozen=True)
class TechnicalCapability(Capability):
    """
    Check technical SEO signals: performance hints, mobile readiness,
    accessibility basics, security headers and indexability.
    """

    name: CapabilityName = CapabilityName.technical

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        meta = page["meta"]
        images = page["images"]
        headers = page.get("headers") or {}
        response_ms = page.get("response_ms")

        performance_issues = []
        if response_ms is not None and response_ms > 2000:
            performance_issues.append(f"Slow server response ({response_ms:.0f}ms)")
        large = [i for i in images if re.search(r"large|big|full|original", i["src"].lower())]
        if len(large) > 5:
            performance_issues.append("Multiple large images detected - may impact performance")
        if len(images) > 50:
            performance_issues.append(f"High image count ({len(images)})")

        viewport = meta.get("viewport", "")
        mobile_issues = []
        if not viewport:
            mobile_issues.append("Missing viewport meta tag")
        elif "width=device-width" not in viewport.replace(" ", ""):
            mobile_issues.append("Viewport does not use width=device-width")

        accessibility_issues = []
        missing_alt = sum(1 for i in images if not i["alt"])
        if missing_alt:
            accessibility_issues.append(f"{missing_alt} image(s) without alt text")
        if not page["html"].get("lang"):
            accessibility_issues.append("Missing HTML lang attribute")
        if len(page["headings"].get("h1", [])) != 1:
            accessibility_issues.append(f"Page has {len(page['headings'].get('h1', []))} H1 headings (expected 1)")

        https = urlparse(page.get("url", ctx.target)).scheme == "https"
        missing_headers = [h for h in SECURITY_HEADERS if h not in headers]
        security_issues = [] if https else ["Page is not served over HTTPS"]
        if missing_headers:
            security_issues.append(f"Missing security headers: {', '.join(missing_headers)}")

        robots = meta.get("robots", "").lower()
        indexability_issues = []
        if "noindex" in robots:
            indexability_issues.append("Page is marked noindex")
        if not meta.get("canonical"):
            indexability_issues.append("Missing canonical link")

        analysis: Dict[str, Any] = {
            "performance": {"response_ms": response_ms, "image_count": len(images), "issues": performance_issues},
            "mobile": {"has_viewport": bool(viewport), "issues": mobile_issues},
            "accessibility": {"images_missing_alt": missing_alt, "issues": accessibility_issues},
            "security": {"https": https, "missing_headers": missing_headers, "issues": security_issues},
            "indexability": {"robots": robots, "canonical": meta.get("canonical", ""), "issues": indexability_issues},
        }
        issue_count = sum(len(section["issues"]) for section in analysis.values())
        analysis["score"] = max(0, 100 - 8 * issue_count - (20 if not https else 0))

        recs: List[Dict[str, Any]] = []
        if not https:
            recs.append(recommendation("security", "critical", "Serve the page over HTTPS", "HTTPS is a ranking signal"))
        if "noindex" in robots:
            recs.append(recommendation("indexability", "critical", "Remove noindex if the page should rank",
                                       "Page is excluded from search results"))
        if mobile_issues:
            recs.append(recommendation("mobile", "high", mobile_issues[0], "Mobile-first indexing"))
        for issue in performance_issues:
            recs.append(recommendation("performance", "medium", issue, "Core Web Vitals"))
        for issue in accessibility_issues:
            recs.append(recommendation("accessibility", "medium", issue, "Accessibility and image search"))
        if missing_headers:
            recs.append(recommendation("security", "low", security_issues[-1], "Hardens the site"))
        if not meta.get("canonical"):
            recs.append(recommendation("indexability", "low", "Add a canonical link", "Prevents duplicate content"))

        ai = await ai_insights(
            ctx,
            (
                "Analyze these technical SEO findings and suggest specific fixes.\n"
                f"URL: {page.get('url', ctx.target)}\nFINDINGS: {[i for s in analysis.values() if isinstance(s, dict) for i in s['issues']]}"
            ),
            {"recommendations": []},
        )
        analysis["ai_recommendations"] = list((ai or {}).get("recommendations") or [])
        analysis["recommendations"] = sort_recommendations(recs)
        return CapabilityResult(ok=True, output=analysis)


SCHEMA_REQUIRED_PROPERTIES = {
    "Article": ["headline", "author", "datePublished"],
    "BlogPosting": ["headline", "author", "datePublished"],
    "Product": ["name", "offers"],
    "Organization": ["name", "url"],
    "LocalBusiness": ["name", "address"],
    "WebSite": ["name", "url"],
    "BreadcrumbList": ["itemListElement"],
    "FAQPage": ["mainEntity"],
}


def _schema_nodes(blocks: Iterable[Any]) -> List[Dict[str, Any]]:
    nodes: List[Dict[str, Any]] = []
    for block in blocks:
        if isinstance(block, list):
            nodes.extend(_schema_nodes(block))
        elif isinstance(block, dict):
            if isinstance(block.get("@graph"), list):
                nodes.extend(_schema_nodes(block["@graph"]))
            if "@type" in block:
                nodes.append(block)
    return nodes


@dataclass(frozen=True)
class SchemaCapability(Capability):
    """
    Detect JSON-LD structured data, validate required properties of common
    types and suggest missing markup.
    """

    name: CapabilityName = CapabilityName.schema

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        nodes = _schema_nodes(page.get("schema") or [])

        detected: List[str] = []
        problems: List[Dict[str, Any]] = []
        for node in nodes:
            types = node["@type"] if isinstance(node["@type"], list) else [node["@type"]]
            for type_ in map(str, types):
                detected.append(type_)
                missing = [p for p in SCHEMA_REQUIRED_PROPERTIES.get(type_, []) if p not in node]
                if missing:
                    problems.append({"type": type_, "missing_properties": missing})

        suggested = [t for t in ("Organization", "WebSite", "BreadcrumbList") if t not in detected]
        path = urlparse(page.get("url", ctx.target)).path.lower()
        if any(seg in path for seg in ("/blog", "/news", "/article")) and not {"Article", "BlogPosting"} & set(detected):
            suggested.insert(0, "Article")

        template = {
            "@context": "https://schema.org",
            "@type": "WebPage",
            "name": page.get("title", ""),
            "description": page["meta"].get("description", ""),
            "url": page.get("url", ctx.target),
        }

        recs: List[Dict[str, Any]] = []
        if not nodes:
            recs.append(recommendation("schema_missing", "high", "Add JSON-LD structured data",
                                       "Enables rich results in search", template=template))
        for problem in problems:
            recs.append(recommendation("schema_invalid", "medium",
                                       f"{problem['type']} is missing: {', '.join(problem['missing_properties'])}",
                                       "Incomplete markup is ignored for rich results"))
        if nodes and suggested:
            recs.append(recommendation("schema_opportunity", "low", f"Consider adding: {', '.join(suggested[:3])}",
                                       "More eligible rich result types"))

        return CapabilityResult(
            ok=True,
            output={
                "detected": sorted(set(detected)),
                "count": len(nodes),
                "validation": problems,
                "suggested_types": suggested,
                "template": template,
                "recommendations": sort_recommendations(recs),
            },
        )


GENERIC_FILENAME = re.compile(r"^(img|image|dsc|photo|pic|screenshot)?[-_]?\d+$", re.IGNORECASE)
MODERN_FORMATS = {"webp", "avif", "svg"}


def _filename(src: str) -> str:
    return urlparse(src).path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class ImageCapability(Capability):
    """
    Audit page images: alt text coverage, descriptive filenames and modern
    formats. Suggested alt texts come from filenames, or from the model when
    available.
    """

    name: CapabilityName = CapabilityName.image

    async def execute(self, ctx: CapabilityContext, *, inputs: Mapping[CapabilityName, ResultRecord]) -> CapabilityResult:
        page = page_of(inputs)
        images = []
        for img in page["images"]:
            filename = _filename(img["src"])
            stem, dot, ext = filename.rpartition(".")
            if not dot:
                stem, ext = filename, ""
            issues = []
            if not img["alt"]:
                issues.append("missing alt text")
            elif len(img["alt"]) > 125:
                issues.append("alt text longer than 125 characters")
            if stem and GENERIC_FILENAME.match(stem):
                issues.append("non-descriptive filename")
            if ext and ext.lower() not in MODERN_FORMATS:
                issues.append(f"legacy format ({ext.lower()})")
            images.append(
                {
                    "src": img["src"],
                    "alt": img["alt"],
                    "filename": filename,
                    "suggested_alt": img["alt"] or re.sub(r"[-_]+", " ", stem).strip().capitalize(),
                    "issues": issues,
                }
            )

        missing = [i for i in images if not i["alt"]]
        if missing:
            ai = await ai_insights(
                ctx,
                (
                    f"Suggest concise alt texts for images on the page '{page.get('title', '')}'.\n"
                    f"FILENAMES: {[i['filename'] for i in missing[:10]]}"
                ),
                {"alt_texts": {}},
            )
            suggestions = (ai or {}).get("alt_texts") or {}
            if isinstance(suggestions, dict):
                for img in missing:
                    if suggestions.get(img["filename"]):
                        img["suggested_alt"] = str(suggestions[img["filename"]])

        summary = {
            "total": len(images),
            "missing_alt": len(missing),
            "generic_filenames": sum(1 for i in images if "non-descriptive filename" in i["issues"]),
            "legacy_formats": sum(1 for i in images if any(s.startswith("legacy") for s in i["issues"])),
        }
        recs: List[Dict[str, Any]] = []
        if summary["missing_alt"]:
            recs.append(recommendation("image_alt", "high", f"Add alt text to {summary['missing_alt']} image(s)",
                                       "Accessibility and image search visibility"))
        if summary["generic_filenames"]:
            recs.append(recommendation("image_filename", "low",
                                       f"Rename {summary['generic_filenames']} image(s) with descriptive filenames",
                                       "Filenames are a relevance signal for image search"))
        if summary["legacy_formats"]:
            recs.append(recommendation("image_format", "medium",
                                       f"Serve {summary['legacy_formats']} image(s) as WebP or AVIF",
                                       "Smaller payloads improve loading performance"))
        return CapabilityResult(
            ok=True, output={"images": images, "summary": summary, "recommendations": sort_recommendations(recs)}
        )
