"""ORM Models - SQLAlchemy declarative models backing the entry store.

Invariants:
    - All models inherit from Base (db/base.py)
    - Imported here so Base.metadata knows every table before create_all runs
"""

from echo_journal.models.entry import JournalEntryRow  # noqa: F401
