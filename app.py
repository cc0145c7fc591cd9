from flask import Flask, g, jsonify, request, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import HTTPException
from errors import InvalidInput, TrackerError, Unauthorized
from forms import JobForm, JobIdForm, JobUpdateForm, LoginForm, OwnerForm, SignupForm
from models import db
import logging
import os
import store

log = logging.getLogger(__name__)


# ================= CONFIG =================
def load_config():
    database_url = os.environ.get("DATABASE_URL")

    # Local fallback
    if not database_url:
        database_url = "sqlite:///job_tracker.db"

    # Fix postgres:// issue
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return {
        "SECRET_KEY": os.environ.get("SECRET_KEY", "dev-secret-key"),
        "SQLALCHEMY_DATABASE_URI": database_url,
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "PASSWORD_HASH_METHOD": os.environ.get("PASSWORD_HASH_METHOD"),
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": os.environ.get("RENDER") == "true",
        "WTF_CSRF_ENABLED": False,
        "LOG_LEVEL": os.environ.get("LOG_LEVEL", "INFO"),
    }


# ================= REQUEST HELPERS =================
def request_data():
    """Query string merged with the JSON or form body, nulls dropped."""
    data = MultiDict()
    sources = [request.args]
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        sources.append(MultiDict(body))
    else:
        sources.append(request.form)

    for source in sources:
        for key, value in source.items(multi=True):
            if value is None:
                continue
            data.setlist(key, [value if isinstance(value, str) else str(value)])
    return data


def validated(form_class):
    form = form_class(formdata=request_data())
    if not form.validate():
        raise InvalidInput(form.first_error())
    return form


def owner_email():
    """Owner email for this request, as supplied by the caller."""
    form = validated(OwnerForm)
    g.owner_email = form.email.data.strip()
    return form


def fail(message, status_code):
    return jsonify({"ok": False, "message": message}), status_code


# ================= ROUTES =================
def register_routes(app):

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ready"})

    # ================= SIGNUP =================
    @app.route("/api/auth/signup", methods=["POST"])
    def signup():
        form = validated(SignupForm)
        store.register(form.name.data, form.email.data, form.password.data)
        return jsonify({"ok": True, "message": "User created successfully"}), 201

    # ================= LOGIN =================
    @app.route("/api/login", methods=["POST"])
    def login():
        form = validated(LoginForm)
        user = store.authenticate(form.email.data, form.password.data)

        session.clear()
        session["user"] = user
        return jsonify({"ok": True, "user": user})

    # ================= LOGOUT =================
    @app.route("/api/logout", methods=["POST"])
    def logout():
        session.clear()
        return jsonify({"ok": True, "message": "Logged out"})

    @app.route("/api/session")
    def current_session():
        user = session.get("user")
        if not user:
            raise Unauthorized("Not logged in")
        return jsonify({"ok": True, "user": user})

    # ================= JOBS =================
    @app.route("/api/jobs", methods=["GET"])
    def list_jobs():
        form = owner_email()
        jobs = store.list_jobs(g.owner_email)
        if form.q.data or form.status.data:
            jobs = store.filter_jobs(jobs, form.q.data, form.status.data)
        return jsonify({"ok": True, "jobs": [job.to_dict() for job in jobs]})

    @app.route("/api/jobs", methods=["POST"])
    def create_job():
        form = validated(JobForm)
        job = store.create_job(
            owner_email=form.userEmail.data.strip(),
            company=form.company.data,
            role=form.role.data,
            applied_date=form.appliedDate.data,
            status=form.status.data,
            notes=form.notes.data,
        )
        return jsonify({"ok": True, "job": job.to_dict()}), 201

    @app.route("/api/jobs", methods=["PUT"])
    def update_job():
        form = validated(JobUpdateForm)
        update = store.JobUpdate(
            company=form.company.data if form.supplied("company") else None,
            role=form.role.data if form.supplied("role") else None,
            status=form.status.data.strip() if form.status.data else None,
            applied_date=form.appliedDate.data,
            notes=form.notes.data if form.supplied("notes") else None,
        )
        job = store.update_job(form.id.data, update)
        return jsonify({"ok": True, "job": job.to_dict()})

    @app.route("/api/jobs", methods=["DELETE"])
    def delete_job():
        form = validated(JobIdForm)
        deleted_id = store.delete_job(form.id.data)
        return jsonify({"ok": True, "message": "Job deleted", "deletedId": deleted_id})

    # ================= STATS =================
    @app.route("/api/jobs/stats")
    def job_stats():
        owner_email()
        return jsonify({"ok": True, "stats": store.compute_stats(g.owner_email)})


# ================= ERRORS =================
def register_error_handlers(app):

    @app.errorhandler(TrackerError)
    def tracker_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def database_error(error):
        db.session.rollback()
        log.error("Unhandled database error on %s %s", request.method, request.path, exc_info=error)
        return fail("Server error", 500)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return fail(error.description, error.code)


# ================= APP =================
def create_app(config=None):
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)

    logging.basicConfig(
        level=getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db.init_app(app)
    with app.app_context():
        db.create_all()

    register_routes(app)
    register_error_handlers(app)
    return app


# ================= RUN =================
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port)
