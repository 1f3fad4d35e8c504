"""
db - Database layer.

Public API:
    init_db(url)     → create engine + tables, return session factory
    SqlStore(...)    → table-name keyed store used by the import engine
    Patient, …       → ORM models
"""

from db.engine import init_db                                   # noqa: F401
from db.models import (                                         # noqa: F401
    Base, Patient, Medication, PatientEligibility, Schedule, TABLES,
)
from db.store import Store, SqlStore, StoreError                # noqa: F401
