from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

import store
from errors import Conflict, InvalidInput, NotFound, StoreFailure, Unauthorized
from models import JobApplication, JobStatus, db


def make_job(owner="user@x.com", company="Acme", role="Engineer", status=None, notes=None):
    return store.create_job(owner, company, role, date(2024, 3, 1), status=status, notes=notes)


# ================= CREDENTIALS =================
def test_register_then_authenticate(ctx):
    store.register("Ada", "ada@example.com", "s3cret")
    assert store.authenticate("ada@example.com", "s3cret") == {"name": "Ada", "email": "ada@example.com"}


def test_password_is_hashed(ctx):
    user = store.register("Ada", "ada@example.com", "s3cret")
    assert user.password_hash != "s3cret"
    assert user.password_hash.startswith("pbkdf2:sha256:1000$")


def test_register_duplicate_email(ctx):
    store.register("Ada", "ada@example.com", "s3cret")
    with pytest.raises(Conflict):
        store.register("Someone Else", "ada@example.com", "other")


@pytest.mark.parametrize("name,email,password", [
    ("", "ada@example.com", "pw"),
    ("Ada", "", "pw"),
    ("Ada", "ada@example.com", ""),
    ("   ", "ada@example.com", "pw"),
])
def test_register_requires_all_fields(ctx, name, email, password):
    with pytest.raises(InvalidInput):
        store.register(name, email, password)


def test_bad_password_and_unknown_email_look_the_same(ctx):
    store.register("Ada", "ada@example.com", "s3cret")
    with pytest.raises(Unauthorized) as wrong_password:
        store.authenticate("ada@example.com", "nope")
    with pytest.raises(Unauthorized) as unknown:
        store.authenticate("ghost@example.com", "s3cret")
    assert wrong_password.value.to_dict() == unknown.value.to_dict()


# ================= JOBS =================
def test_create_defaults(ctx):
    job = make_job()
    assert job.status == JobStatus.APPLIED.value
    assert job.notes == ""
    assert job.created_at is not None


def test_create_rejects_unknown_status(ctx):
    with pytest.raises(InvalidInput):
        make_job(status="Ghosted")


def test_create_requires_fields(ctx):
    with pytest.raises(InvalidInput):
        store.create_job("user@x.com", "", "Engineer", date(2024, 3, 1))
    with pytest.raises(InvalidInput):
        store.create_job("user@x.com", "Acme", "Engineer", None)


def test_list_newest_first_and_scoped_to_owner(ctx):
    first = make_job(company="First")
    second = make_job(company="Second")
    make_job(owner="other@x.com", company="Elsewhere")

    jobs = store.list_jobs("user@x.com")
    assert [job.id for job in jobs] == [second.id, first.id]


def test_list_empty(ctx):
    assert store.list_jobs("nobody@x.com") == []


def test_update_only_status(ctx):
    job = make_job(notes="referral")
    updated = store.update_job(job.id, store.JobUpdate(status=JobStatus.OFFER))

    assert updated.status == "Offer"
    assert updated.company == "Acme"
    assert updated.role == "Engineer"
    assert updated.applied_date == date(2024, 3, 1)
    assert updated.notes == "referral"


def test_update_can_clear_notes(ctx):
    job = make_job(notes="referral")
    assert store.update_job(job.id, store.JobUpdate(notes="")).notes == ""


def test_update_rejects_blank_company(ctx):
    job = make_job()
    with pytest.raises(InvalidInput):
        store.update_job(job.id, store.JobUpdate(company="  "))


def test_update_missing(ctx):
    with pytest.raises(NotFound):
        store.update_job(999, store.JobUpdate(status="Offer"))


def test_delete(ctx):
    job = make_job()
    assert store.delete_job(job.id) == job.id
    assert store.list_jobs("user@x.com") == []


def test_delete_missing_leaves_count(ctx):
    make_job()
    before = JobApplication.query.count()
    with pytest.raises(NotFound):
        store.delete_job(12345)
    assert JobApplication.query.count() == before


# ================= STATS =================
def test_stats_scenario(ctx):
    make_job(company="A", status="Interview")
    make_job(company="B", status="Offer")
    make_job(company="C", status="Applied")
    assert store.compute_stats("user@x.com") == {
        "total": 3, "test": 0, "interview": 1, "offer": 1, "reject": 0,
    }


def test_stats_empty(ctx):
    assert store.compute_stats("nobody@x.com") == {
        "total": 0, "test": 0, "interview": 0, "offer": 0, "reject": 0,
    }


def test_stats_total_matches_list(ctx):
    for status in ["Applied", "Online Test", "Online Test", "Rejected", None, "Offer"]:
        make_job(status=status)
    make_job(owner="other@x.com", status="Offer")

    stats = store.compute_stats("user@x.com")
    assert stats["total"] == len(store.list_jobs("user@x.com")) == 6
    assert stats["test"] == 2
    assert stats["test"] + stats["interview"] + stats["offer"] + stats["reject"] <= stats["total"]


def test_stats_require_email(ctx):
    with pytest.raises(InvalidInput):
        store.compute_stats("")


# ================= FILTERING =================
def test_filter_jobs(ctx):
    make_job(company="Globex", role="Data Analyst", status="Interview")
    make_job(company="Acme", role="Backend Engineer", status="Applied")
    make_job(company="Initech", role="Engineer", status="Interview")
    jobs = store.list_jobs("user@x.com")

    assert [j.company for j in store.filter_jobs(jobs, "engineer")] == ["Initech", "Acme"]
    assert [j.company for j in store.filter_jobs(jobs, status="Interview")] == ["Initech", "Globex"]
    assert [j.company for j in store.filter_jobs(jobs, "glob", "Interview")] == ["Globex"]
    assert len(store.filter_jobs(jobs, "", "All")) == 3


def test_status_parse():
    assert JobStatus.parse(None) is JobStatus.APPLIED
    assert JobStatus.parse("") is JobStatus.APPLIED
    assert JobStatus.parse("Online Test") is JobStatus.ONLINE_TEST
    with pytest.raises(ValueError):
        JobStatus.parse("offer")


def test_create_rejects_whitespace_company_and_role(ctx):
    with pytest.raises(InvalidInput):
        store.create_job("user@x.com", "   ", "Engineer", date(2024, 3, 1))
    with pytest.raises(InvalidInput):
        store.create_job("user@x.com", "Acme", "\t", date(2024, 3, 1))
    assert JobApplication.query.count() == 0


def test_get_job_out_of_range_id(ctx):
    with pytest.raises(NotFound):
        store.get_job(10**20)


# ================= STORE FAILURES =================
def failing_commit(error):
    def commit():
        raise error
    return commit


def test_register_lost_race_is_conflict(ctx, monkeypatch):
    monkeypatch.setattr(db.session, "commit", failing_commit(IntegrityError("INSERT", {}, Exception("UNIQUE"))))
    with pytest.raises(Conflict):
        store.register("Ada", "ada@example.com", "s3cret")


def test_register_database_error(ctx, monkeypatch):
    monkeypatch.setattr(db.session, "commit", failing_commit(OperationalError("INSERT", {}, Exception("gone"))))
    with pytest.raises(StoreFailure):
        store.register("Ada", "ada@example.com", "s3cret")


def test_failed_commit_rolls_back(ctx, monkeypatch):
    monkeypatch.setattr(db.session, "commit", failing_commit(OperationalError("INSERT", {}, Exception("gone"))))
    with pytest.raises(StoreFailure) as err:
        make_job()
    assert err.value.to_dict() == {"ok": False, "message": "Server error"}

    monkeypatch.undo()
    assert store.list_jobs("user@x.com") == []
