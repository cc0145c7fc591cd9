from datetime import datetime, timezone
from enum import Enum

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    # Naive UTC, portable across SQLite and Postgres columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JobStatus(str, Enum):
    APPLIED = "Applied"
    ONLINE_TEST = "Online Test"
    INTERVIEW = "Interview"
    OFFER = "Offer"
    REJECTED = "Rejected"

    @classmethod
    def parse(cls, value):
        """Return the status named by ``value``; blank means Applied.

        Raises ValueError for anything outside the five stages.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.APPLIED
        if isinstance(value, cls):
            return value
        return cls(value.strip())

    @classmethod
    def choices(cls):
        return [status.value for status in cls]


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def identity(self):
        return {"name": self.name, "email": self.email}


class JobApplication(db.Model):
    __tablename__ = "job_applications"

    id = db.Column(db.Integer, primary_key=True)
    # Owner key; no foreign key to users, jobs are filed by email only
    owner_email = db.Column(db.String(120), index=True, nullable=False)
    company = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), default=JobStatus.APPLIED.value, nullable=False)
    applied_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, default="", nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "userEmail": self.owner_email,
            "company": self.company,
            "role": self.role,
            "status": self.status,
            "appliedDate": self.applied_date.isoformat(),
            "notes": self.notes or "",
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
