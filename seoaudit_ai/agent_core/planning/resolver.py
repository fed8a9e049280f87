from __future__ import annotations

"""Dependency resolution for audit tasks.

``DependencyResolver`` turns the set of capabilities a caller asked for into a
*stage plan*: an ordered list of sets of capability names where every member
of stage ``k`` only reads outputs of capabilities in stages ``0..k-1``. All
members of one stage can therefore run concurrently.

Resolution rules
----------------

1. Every requested name must be registered.
2. Hard dependencies are added transitively (the *closure*).
3. The registry root (``crawl``) is always stage 0, requested or not.
4. A capability's depth is one more than the deepest of its hard
   dependencies and of the optional inputs that are part of the closure.
   Optional inputs outside the closure are ignored; they are never injected.
5. Capabilities of equal depth form one stage.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Set, Union

from ..capabilities.registry import CapabilityRegistry
from ..errors import DependencyCycleError, UnknownCapabilityError
from ..schemas.domain import CapabilityName

logger = logging.getLogger(__name__)

Stage = FrozenSet[CapabilityName]


class DependencyResolver:
    """Resolve requested capabilities into a list of concurrent stages."""

    def __init__(self, registry: CapabilityRegistry) -> None:
        self._registry = registry

    def normalize(self, requested: Iterable[Union[CapabilityName, str]]) -> FrozenSet[CapabilityName]:
        """Coerce raw names into registered ``CapabilityName`` values.

        Raises:
            UnknownCapabilityError: For names that are not valid or not registered.
        """
        out: Set[CapabilityName] = set()
        for raw in requested:
            try:
                name = CapabilityName(raw)
            except ValueError:
                raise UnknownCapabilityError(raw) from None
            if not self._registry.has(name):
                raise UnknownCapabilityError(name)
            out.add(name)
        return frozenset(out)

    def closure(self, requested: Iterable[Union[CapabilityName, str]]) -> FrozenSet[CapabilityName]:
        """Return ``requested`` plus the root and every transitive hard dependency."""
        pending = list(self.normalize(requested))
        pending.append(self._registry.root)
        seen: Set[CapabilityName] = set()
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            pending.extend(self._registry.dependencies_of(name) - seen)
        return frozenset(seen)

    def resolve(self, requested: Iterable[Union[CapabilityName, str]]) -> List[Stage]:
        """Build the stage plan for ``requested``.

        Returns
        -------
        list[frozenset[CapabilityName]]
            Stages in execution order. Stage 0 contains exactly the root.

        Raises
        ------
        UnknownCapabilityError
            If a requested name is unknown.
        DependencyCycleError
            If the closure contains a dependency cycle, or the root
            reads from another member of the closure.
        """
        root = self._registry.root
        members = self.closure(requested)
        root_upstream = (self._registry.dependencies_of(root) | self._registry.consumes_of(root)) & members
        if root_upstream:
            raise DependencyCycleError([root, *root_upstream])
        depths: Dict[CapabilityName, int] = {root: 0}
        visiting: List[CapabilityName] = []

        def _depth(name: CapabilityName) -> int:
            if name in depths:
                return depths[name]
            if name in visiting:
                raise DependencyCycleError(visiting[visiting.index(name):])
            visiting.append(name)
            upstream = (self._registry.dependencies_of(name) | self._registry.consumes_of(name)) & members
            depth = 1 + max((_depth(dep) for dep in upstream), default=0)
            visiting.pop()
            depths[name] = depth
            return depth

        for name in members:
            _depth(name)

        stages: List[Set[CapabilityName]] = [set() for _ in range(max(depths.values()) + 1)]
        for name, depth in depths.items():
            stages[depth].add(name)
        plan = [frozenset(stage) for stage in stages if stage]
        logger.debug(f"Resolved plan: {[sorted(c.value for c in stage) for stage in plan]}")
        return plan
