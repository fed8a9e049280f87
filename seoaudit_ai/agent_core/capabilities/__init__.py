"""Capability registry and the built-in SEO capabilities.

 A *capability* is one unit of analysis performed on a target URL.

 - Callers request capabilities by ``CapabilityName``.
 - The ``DependencyResolver`` turns the request into ordered stages using the
   ``CapabilityDescriptor`` declared for each capability at registration.
 - The executor invokes the implementation with a ``CapabilityContext`` and
   the records of the capabilities it declared as inputs.

 This package exports:

 - ``Capability``: protocol for async capability execution.
 - ``CapabilityRegistry``: name → capability implementation and descriptor.
 - ``CapabilityContext``/``CapabilityResult``: execution input/output models.
 - the built-in implementations, one per ``CapabilityName``.
 """

from .base import (
    Capability,
    CapabilityContext,
    CapabilityDescriptor,
    CapabilityResult,
    output_of,
)
from .builtin import (
    CrawlCapability,
    ImageCapability,
    KeywordCapability,
    SchemaCapability,
    TechnicalCapability,
)
from .registry import CapabilityRegistry
from .synthesis import (
    ContentCapability,
    LearningCapability,
    MetaCapability,
    PatternStore,
    ReportCapability,
    ValidationCapability,
)

__all__ = [
    "Capability",
    "CapabilityContext",
    "CapabilityDescriptor",
    "CapabilityResult",
    "CapabilityRegistry",
    "output_of",
    "CrawlCapability",
    "KeywordCapability",
    "TechnicalCapability",
    "SchemaCapability",
    "ImageCapability",
    "ContentCapability",
    "MetaCapability",
    "ValidationCapability",
    "ReportCapability",
    "LearningCapability",
    "PatternStore",
]
