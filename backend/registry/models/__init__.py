"""ORM Models — SQLAlchemy declarative models for the four subject collections.

Invariants:
    - All models inherit from Base (db/base.py)
    - Credential is the aggregate root; every child row carries a unique subject_id FK

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs (ADR: standard SQLAlchemy pattern)
"""

from registry.models.credential import Credential  # noqa: F401
from registry.models.personal_detail import PersonalDetail  # noqa: F401
from registry.models.education_record import EducationRecord  # noqa: F401
from registry.models.medical_record import MedicalRecord  # noqa: F401
