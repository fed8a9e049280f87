"""Planning subsystem.

The planner of this project is deterministic: it does not ask a model what to
do, it derives a stage plan from the capability dependency graph.

- ``DependencyResolver.resolve`` expands the requested capabilities with their
  hard dependencies, always includes the root capability, and groups
  capabilities of equal dependency depth into concurrent stages.
"""

from .resolver import DependencyResolver, Stage

__all__ = ["DependencyResolver", "Stage"]
