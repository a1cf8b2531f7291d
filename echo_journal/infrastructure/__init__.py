"""Infrastructure Layer - concrete collaborators and cross-cutting concerns.

Invariants:
    - Each collaborator satisfies a Protocol from core/repository_protocols.py
    - All external failures mapped to the JournalError hierarchy (core/errors.py)
"""
