from flask import Blueprint, g, jsonify

from utils.auth_context import admin_required

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/dashboard")
@admin_required
def dashboard():
    return jsonify(page="admin/dashboard", props={"admin": g.admin.to_dict()}), 200


@admin_bp.get("/me")
@admin_required
def me():
    return jsonify(g.admin.to_dict()), 200
