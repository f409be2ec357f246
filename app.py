from flask import Flask, request, g, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from routes import health_bp, admin_auth_bp, admin_bp, auth_bp

from models import db
from security.csrf import CSRF_EXEMPT_PATHS, require_csrf
from security.guard import GUARDS
from security.throttle import init_throttle
from utils.auth_context import load_current_accounts


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(admin_auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(auth_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Login throttle (store chosen by THROTTLE_STORE)
    init_throttle(app)

    @app.before_request
    def _load_accounts():
        load_current_accounts()

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Exempt auth bootstrap endpoints
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Only enforce CSRF if a guard is already authenticated (cookie session)
            if g.get("admin") is not None or g.get("user") is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.after_request
    def _apply_session_cookies(resp):
        for guard in GUARDS.values():
            guard.apply_cookie(resp)
        return resp

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return jsonify(error=exc.description or exc.name), exc.code

    register_cli(app)

    return app

#-------------------------
import click
from models.admin import Admin, ADMIN, SUPER_ADMIN
from security.password_policy import validate_password
from security.session import revoke_all_sessions
from security.throttle import get_throttle
from utils.validation import BCRYPT_MAX_BYTES
from utils.seed import create_admin, seed_default_admin

def register_cli(app):
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.option("--name", required=True, help="Display name.")
    @click.option("--role", type=click.Choice([ADMIN, SUPER_ADMIN]), default=ADMIN, show_default=True)
    @click.option("--permission", "permissions", multiple=True, help="Permission name (repeatable).")
    @click.password_option(help="Password (prompted when omitted).")
    def create_admin_command(email, name, role, permissions, password):
        """Create an admin account."""
        email = email.strip().lower()
        if Admin.query.filter_by(email=email).first():
            raise click.ClickException("Admin already exists")

        # bcrypt ignores everything past 72 bytes
        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise click.ClickException(f"Password cannot exceed {BCRYPT_MAX_BYTES} bytes.")

        valid, _rule, message = validate_password(password)
        if not valid:
            raise click.ClickException(message)

        admin = create_admin(email, name, password, role=role, permissions=permissions)
        click.echo(f"Admin {admin.email} created ({admin.role})")

    @app.cli.command("set-admin-status")
    @click.argument("email")
    @click.argument("status", type=click.Choice(["active", "inactive"]))
    def set_admin_status(email, status):
        """Activate or deactivate an admin; deactivation revokes their sessions."""
        admin = Admin.query.filter_by(email=email.strip().lower()).first()
        if not admin:
            raise click.ClickException("Admin not found")

        admin.is_active = status == "active"
        db.session.commit()

        revoked = 0
        if not admin.is_active:
            revoked = revoke_all_sessions("admin", admin.id)
        click.echo(f"{admin.email} is now {status} (revoked sessions: {revoked})")

    @app.cli.command("seed-admins")
    def seed_admins():
        """Create the bootstrap super admin from DEFAULT_ADMIN_* settings."""
        admin = seed_default_admin(app.config)
        if admin is None:
            click.echo("DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD not set, nothing to seed")
            return
        click.echo(f"Super admin ready: {admin.email}")

    @app.cli.command("prune-login-attempts")
    def prune_login_attempts():
        """Delete throttle counters whose window has expired."""
        removed = get_throttle().prune()
        click.echo(f"Pruned {removed} expired login attempt counters")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
