from models.admin import Admin
from models.session import Session
from security.throttle import ADMIN_PREFIX, USER_PREFIX, get_throttle, throttle_key
from tests.conftest import ADMIN_EMAIL, admin_login


def test_create_admin(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "create-admin", "Editor@Example.com", "--name", "Content Editor",
        "--permission", "manage_templates", "--password", "Editor123!x",
    ])
    assert result.exit_code == 0, result.output

    admin = Admin.query.filter_by(email="editor@example.com").one()
    assert admin.role == "admin"
    assert admin.has_permission("manage_templates")
    assert not admin.has_permission("manage_users")


def test_create_admin_rejects_weak_password(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "x@example.com", "--name", "X", "--password", "password"])
    assert result.exit_code != 0
    assert "uppercase" in result.output
    assert Admin.query.count() == 0


def test_create_admin_rejects_password_over_72_bytes(app):
    runner = app.test_cli_runner()
    password = "Aa1!" + "x" * 69
    result = runner.invoke(args=["create-admin", "long@example.com", "--name", "Long", "--password", password])
    assert result.exit_code != 0
    assert "cannot exceed 72 bytes" in result.output
    assert Admin.query.count() == 0


def test_create_admin_rejects_duplicate(app, admin):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", ADMIN_EMAIL, "--name", "Dup", "--password", "Another12!"])
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_deactivation_revokes_sessions(app, client, admin):
    admin_login(client)
    assert Session.query.filter_by(realm="admin", revoked=False).count() == 1

    runner = app.test_cli_runner()
    result = runner.invoke(args=["set-admin-status", ADMIN_EMAIL, "inactive"])
    assert result.exit_code == 0, result.output
    assert "revoked sessions: 1" in result.output

    r = client.get("/admin/me", headers={"Accept": "application/json"})
    assert r.status_code == 401

    result = runner.invoke(args=["set-admin-status", ADMIN_EMAIL, "active"])
    assert result.exit_code == 0
    assert admin_login(client).status_code == 200


def test_seed_admins(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-admins"])
    assert "nothing to seed" in result.output

    app.config["DEFAULT_ADMIN_EMAIL"] = "root@example.com"
    app.config["DEFAULT_ADMIN_PASSWORD"] = "Bootstrap1!"
    runner.invoke(args=["seed-admins"])
    runner.invoke(args=["seed-admins"])

    admins = Admin.query.filter_by(email="root@example.com").all()
    assert len(admins) == 1
    assert admins[0].is_super_admin
    assert admins[0].has_permission("anything")


def test_prune_login_attempts(app, clock):
    throttle = get_throttle()
    throttle.record_failure(throttle_key(ADMIN_PREFIX, "10.0.0.1"))
    throttle.record_failure(throttle_key(USER_PREFIX, "10.0.0.2"))

    runner = app.test_cli_runner()
    result = runner.invoke(args=["prune-login-attempts"])
    assert "Pruned 0 " in result.output

    clock.advance(300)
    result = runner.invoke(args=["prune-login-attempts"])
    assert result.exit_code == 0, result.output
    assert "Pruned 2 " in result.output
    assert throttle.attempts(throttle_key(ADMIN_PREFIX, "10.0.0.1")) == 0
