from __future__ import annotations

"""Capability registry.

The registry maps a ``CapabilityName`` to its ``CapabilityDescriptor`` and to
the executable implementation.

The resolver reads descriptors to build stage plans; the executor reads
implementations to run them. The registry is populated once at startup,
validated with ``validate`` and read-only afterwards, so concurrent reads
need no synchronization.
"""

from typing import Dict, FrozenSet, Iterable

from ..errors import DependencyCycleError, UnknownCapabilityError
from ..schemas.domain import CapabilityName
from .base import Capability, CapabilityDescriptor


class CapabilityRegistry:
    """
    In-memory table of capability descriptors and implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the capability name.
        - Lookups of unregistered names raise ``UnknownCapabilityError``.
        - ``root`` is the capability every plan starts with (``crawl`` by default).
    """

    def __init__(self, *, root: CapabilityName = CapabilityName.crawl) -> None:
        self._caps: Dict[CapabilityName, Capability] = {}
        self._descriptors: Dict[CapabilityName, CapabilityDescriptor] = {}
        self._root = root

    @property
    def root(self) -> CapabilityName:
        return self._root

    def register(
        self,
        cap: Capability,
        *,
        depends_on: Iterable[CapabilityName] = (),
        consumes: Iterable[CapabilityName] = (),
        foundational: bool = False,
    ) -> CapabilityDescriptor:
        """
        Register a capability implementation with its dependency declaration.

        Args:
            cap: The capability instance. It must expose a ``name`` attribute.
            depends_on: Hard dependencies; their output is required.
            consumes: Optional inputs; used when present, never injected.
            foundational: Whether a failure of this capability is fatal to the target.

        Returns:
            The descriptor stored for the capability.
        """
        descriptor = CapabilityDescriptor(
            name=cap.name,
            hard_dependencies=frozenset(depends_on),
            consumes=frozenset(consumes),
            foundational=foundational,
        )
        self._caps[cap.name] = cap
        self._descriptors[cap.name] = descriptor
        return descriptor

    def get(self, name: CapabilityName) -> Capability:
        """
        Retrieve a registered capability implementation by name.

        Raises:
            UnknownCapabilityError: If no capability is registered with the given name.
        """
        try:
            return self._caps[name]
        except KeyError:
            raise UnknownCapabilityError(name) from None

    def has(self, name: CapabilityName) -> bool:
        return name in self._caps

    def descriptor(self, name: CapabilityName) -> CapabilityDescriptor:
        try:
            return self._descriptors[name]
        except KeyError:
            raise UnknownCapabilityError(name) from None

    def dependencies_of(self, name: CapabilityName) -> FrozenSet[CapabilityName]:
        return self.descriptor(name).hard_dependencies

    def consumes_of(self, name: CapabilityName) -> FrozenSet[CapabilityName]:
        return self.descriptor(name).consumes

    def is_foundational(self, name: CapabilityName) -> bool:
        return self.descriptor(name).foundational

    def all_ids(self) -> FrozenSet[CapabilityName]:
        return frozenset(self._descriptors)

    def validate(self) -> None:
        """Check the registry invariants before any task is started.

        Raises:
            UnknownCapabilityError: If the root or a declared input is not registered.
            DependencyCycleError: If the dependency graph contains a cycle.
        """
        if self._root not in self._descriptors:
            raise UnknownCapabilityError(self._root)
        for descriptor in self._descriptors.values():
            for dep in descriptor.inputs:
                if dep not in self._descriptors:
                    raise UnknownCapabilityError(dep)

        visiting: set[CapabilityName] = set()
        done: set[CapabilityName] = set()

        def _visit(name: CapabilityName, path: list[CapabilityName]) -> None:
            if name in done:
                return
            if name in visiting:
                raise DependencyCycleError(path[path.index(name):])
            visiting.add(name)
            path.append(name)
            for dep in self._descriptors[name].inputs:
                _visit(dep, path)
            path.pop()
            visiting.discard(name)
            done.add(name)

        for name in self._descriptors:
            _visit(name, [])
