"""Fixed vocabularies shared by models, schemas and services."""

from __future__ import annotations

import enum


class Role(str, enum.Enum):
    CITIZEN = "citizen"
    STAFF = "staff"
    ADMIN = "admin"

    @property
    def label(self) -> str:
        """Role as recorded on timeline entries (``Citizen``, ``Staff``, ``Admin``)."""
        return self.value.capitalize()


class IssueStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In-Progress"
    WORKING = "Working"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class Priority(str, enum.Enum):
    NORMAL = "Normal"
    HIGH = "High"


class ApplicationStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class PaymentKind(str, enum.Enum):
    BOOST = "boost"
    SUBSCRIPTION = "subscription"
