"""Service Layer - stateful components that own Session, Mirror and PromptSet.

Invariants:
    - Each owned entity is mutated by exactly one component
    - Collaborators are reached only through core/repository_protocols.py
"""
