"""
Repositories: typed CRUD per entity family, with change logging.
"""

from cooperativa.application.repository.activities import (
    ActivityRepository,
    AssignmentChanges,
    AssignmentRepository,
    AttendanceRepository,
)
from cooperativa.application.repository.base import TableRepository, check_connection, store_errors
from cooperativa.application.repository.clothing import ClothingRepository
from cooperativa.application.repository.donations import DonationRepository
from cooperativa.application.repository.people import FamilyRepository, PeopleRepository

__all__ = [
    "ActivityRepository",
    "AssignmentChanges",
    "AssignmentRepository",
    "AttendanceRepository",
    "ClothingRepository",
    "DonationRepository",
    "FamilyRepository",
    "PeopleRepository",
    "TableRepository",
    "check_connection",
    "store_errors",
]
