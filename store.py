"""Credential store, job store and stats aggregation.

All functions work on the Flask-SQLAlchemy session of the current app
context and raise :mod:`errors` exceptions; the request layer turns those
into HTTP responses.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from errors import Conflict, InvalidInput, NotFound, StoreFailure, Unauthorized
from models import JobApplication, JobStatus, User, db

log = logging.getLogger(__name__)

# Stats key for every status that is counted separately
STAT_KEYS = {
    JobStatus.ONLINE_TEST.value: "test",
    JobStatus.INTERVIEW.value: "interview",
    JobStatus.OFFER.value: "offer",
    JobStatus.REJECTED.value: "reject",
}


@dataclass
class JobUpdate:
    """Fields to overwrite on a job. ``None`` means "leave as is"."""

    company: Optional[str] = None
    role: Optional[str] = None
    status: Optional[JobStatus] = None
    applied_date: Optional[date] = None
    notes: Optional[str] = None

    def changes(self):
        return {k: v for k, v in vars(self).items() if v is not None}


def _commit(action):
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        log.error("Database error while %s", action, exc_info=True)
        raise StoreFailure()


def _parse_status(value):
    try:
        return JobStatus.parse(value)
    except ValueError:
        raise InvalidInput(
            "status must be one of: " + ", ".join(JobStatus.choices())
        )


# ================= CREDENTIALS =================
def register(name, email, password):
    name = (name or "").strip()
    email = (email or "").strip()
    if not name or not email or not password:
        raise InvalidInput("All fields are required")

    try:
        existing = User.query.filter_by(email=email).first()
    except SQLAlchemyError:
        log.error("Database error looking up %s", email, exc_info=True)
        raise StoreFailure()
    if existing:
        log.warning("Signup rejected, email already registered: %s", email)
        raise Conflict("Email already registered")

    method = current_app.config.get("PASSWORD_HASH_METHOD")
    password_hash = (
        generate_password_hash(password, method=method)
        if method
        else generate_password_hash(password)
    )
    user = User(name=name, email=email, password_hash=password_hash)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent signup for the same email
        db.session.rollback()
        log.warning("Signup rejected by unique index: %s", email)
        raise Conflict("Email already registered")
    except SQLAlchemyError:
        db.session.rollback()
        log.error("Database error creating user %s", email, exc_info=True)
        raise StoreFailure()

    log.info("User created: id=%s email=%s", user.id, email)
    return user


def authenticate(email, password):
    try:
        user = User.query.filter_by(email=(email or "").strip()).first()
    except SQLAlchemyError:
        log.error("Database error during login for %s", email, exc_info=True)
        raise StoreFailure()

    if user and check_password_hash(user.password_hash, password or ""):
        log.info("Login successful for user id=%s", user.id)
        return user.identity()

    log.warning("Login failed for %s", email)
    raise Unauthorized("Invalid email or password")


# ================= JOBS =================
def create_job(owner_email, company, role, applied_date, status=None, notes=None):
    if not owner_email or not (company or "").strip() or not (role or "").strip() or not applied_date:
        raise InvalidInput("userEmail, company, role, appliedDate required")

    job = JobApplication(
        owner_email=owner_email,
        company=company,
        role=role,
        status=_parse_status(status).value,
        applied_date=applied_date,
        notes=notes or "",
    )
    db.session.add(job)
    _commit("creating job")
    log.info("Job created: id=%s owner=%s", job.id, owner_email)
    return job


def list_jobs(owner_email):
    if not owner_email:
        raise InvalidInput("email query param required")
    try:
        return (
            JobApplication.query
            .filter_by(owner_email=owner_email)
            .order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
            .all()
        )
    except SQLAlchemyError:
        log.error("Database error listing jobs for %s", owner_email, exc_info=True)
        raise StoreFailure()


def get_job(job_id):
    try:
        job = db.session.get(JobApplication, job_id)
    except OverflowError:
        # Beyond the integer column range, so no such row
        job = None
    except SQLAlchemyError:
        log.error("Database error loading job %s", job_id, exc_info=True)
        raise StoreFailure()
    if job is None:
        raise NotFound("Job not found")
    return job


def update_job(job_id, update):
    if job_id is None:
        raise InvalidInput("id is required")
    changes = update.changes()
    for field in ("company", "role"):
        if field in changes and not changes[field].strip():
            raise InvalidInput(f"{field} cannot be blank")

    job = get_job(job_id)
    for field, value in changes.items():
        if field == "status":
            value = _parse_status(value).value
        setattr(job, field, value)

    if changes:
        _commit(f"updating job {job_id}")
        log.info("Job updated: id=%s fields=%s", job_id, sorted(changes))
    else:
        log.info("No changes for job id=%s", job_id)
    return job


def delete_job(job_id):
    if job_id is None:
        raise InvalidInput("id is required")
    job = get_job(job_id)
    db.session.delete(job)
    _commit(f"deleting job {job_id}")
    log.info("Job deleted: id=%s", job_id)
    return job_id


# ================= STATS =================
def compute_stats(owner_email):
    if not owner_email:
        raise InvalidInput("Email required")
    try:
        rows = (
            db.session.query(JobApplication.status, func.count(JobApplication.id))
            .filter(JobApplication.owner_email == owner_email)
            .group_by(JobApplication.status)
            .all()
        )
    except SQLAlchemyError:
        log.error("Database error computing stats for %s", owner_email, exc_info=True)
        raise StoreFailure()

    stats = {"total": 0, "test": 0, "interview": 0, "offer": 0, "reject": 0}
    for status, count in rows:
        stats["total"] += count
        key = STAT_KEYS.get(status)
        if key:
            stats[key] += count
    return stats


def filter_jobs(jobs, search="", status=None):
    """Narrow an already-fetched job list the way the dashboard does.

    ``search`` is a case-insensitive substring of company or role;
    ``status`` must match exactly, with ``None`` or ``"All"`` meaning any.
    """
    needle = (search or "").strip().lower()
    if status in (None, "", "All"):
        wanted = None
    else:
        wanted = _parse_status(status).value

    return [
        job for job in jobs
        if (not needle or needle in job.company.lower() or needle in job.role.lower())
        and (wanted is None or job.status == wanted)
    ]
