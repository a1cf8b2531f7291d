"""Echo Journal - journaling client with live sync and reflective prompts.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
