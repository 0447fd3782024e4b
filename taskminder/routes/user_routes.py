from flask import Blueprint, jsonify, request

from taskminder.models.task_repository import TaskRepository
from taskminder.models.user_model import is_valid_email
from taskminder.utils.db import get_db

users_bp = Blueprint("users", __name__)


@users_bp.post("/register")
def register():
    payload = request.get_json(silent=True) or {}
    email = (payload.get("email") or "").strip()
    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    TaskRepository(get_db()).ensure_user(email)
    return jsonify(ok=True), 200
