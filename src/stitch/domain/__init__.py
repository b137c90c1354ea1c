"""
stitch: domain layer

Purpose
- Entity types of the stitch language (ranges, machines, containers, labels,
  connections, placements, invariants) and the naming/ID primitives.

Functional requirements
- Keep the domain layer free of IO side effects.
"""
