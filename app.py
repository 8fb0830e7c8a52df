import logging

import click
from flask import Flask, g, request
from flask.cli import AppGroup
from flask_migrate import Migrate
from sqlalchemy import inspect

from config import Config
from models import db
from routes import admin_bp, auth_bp, catalog_bp, health_bp, media_bp, orders_bp, payments_bp, webhook_bp
from security.session import csrf_failure
from utils.auth_context import load_current_user
from utils.challenges import purge_expired_challenges
from utils.security_context import get_monitor, init_security
from utils.seed import ensure_admin, seed_roles


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)


def _schema_ready() -> bool:
    # false before the first `flask db upgrade`
    tables = inspect(db.engine)
    return all(tables.has_table(name) for name in ("roles", "kv_entries", "pending_challenges"))


def _startup_tasks(app):
    seed_roles()
    if app.config.get("ADMIN_EMAIL") and app.config.get("ADMIN_PASSWORD"):
        ensure_admin(app.config["ADMIN_EMAIL"], app.config["ADMIN_PASSWORD"])

    # retention pruning runs once per process, the size cap covers the rest
    removed = get_monitor().prune_older_than(app.config.get("SECURITY_EVENTS_RETENTION_DAYS", 7))
    purged = purge_expired_challenges()
    app.logger.info("Startup cleanup: %d old security events, %d stale challenges", removed, purged)


def create_app(config_object=Config, store=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    for bp in (health_bp, auth_bp, catalog_bp, orders_bp, payments_bp, webhook_bp, admin_bp, media_bp):
        app.register_blueprint(bp)

    db.init_app(app)
    Migrate(app, db)
    init_security(app, store=store)

    with app.app_context():
        if app.config.get("TESTING"):
            db.create_all()
        if _schema_ready():
            _startup_tasks(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # only cookie-authenticated state changes need the double-submit token
        if request.method in ("POST", "PUT", "PATCH", "DELETE") and getattr(g, "user", None) is not None:
            if request.path in ("/auth/login", "/webhooks/stripe"):
                return None
            return csrf_failure()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)
    return app


security_cli = AppGroup("security-events", help="Inspect and maintain the security event log.")


@security_cli.command("export")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write to a file instead of stdout.")
def export_events(output):
    """Export security events as comma-separated text."""
    body = get_monitor().export_events()
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(body + "\n")
        click.echo(f"Wrote {output}")
    else:
        click.echo(body)


@security_cli.command("prune")
@click.option("--days", default=7, show_default=True, type=int)
def prune_events(days):
    """Drop security events older than DAYS."""
    removed = get_monitor().prune_older_than(days)
    click.echo(f"Removed {removed} events")


def register_cli(app):
    app.cli.add_command(security_cli)

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.password_option()
    def create_admin(email, password):
        """Create an admin account (or promote an existing one)."""
        user = ensure_admin(email, password)
        click.echo(f"{user.email} is an ADMIN")

    @app.cli.command("purge-challenges")
    def purge_challenges():
        """Delete expired and consumed checkout challenges."""
        click.echo(f"Deleted {purge_expired_challenges()} challenges")


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5002)
