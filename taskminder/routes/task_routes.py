from flask import Blueprint, jsonify, request

from taskminder.errors import ValidationError
from taskminder.models.task_model import normalize_task
from taskminder.models.task_repository import TaskRepository
from taskminder.models.user_model import is_valid_email
from taskminder.utils.db import get_db

tasks_bp = Blueprint("tasks", __name__)


def _repo() -> TaskRepository:
    return TaskRepository(get_db())


@tasks_bp.get("")
def list_tasks():
    email = request.args.get("email")
    if not email:
        return jsonify(error="Missing email"), 400
    return jsonify([t.to_dict() for t in _repo().list_for_user(email)]), 200


@tasks_bp.post("")
def create_task():
    payload = request.get_json(silent=True) or {}
    email = payload.get("email")
    if not email:
        return jsonify(error="Missing email"), 400
    # The address ends up in a mail header.
    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    try:
        task = normalize_task(payload)
    except ValidationError as exc:
        return jsonify(error=str(exc)), 400

    created = _repo().create(email, task)
    return jsonify(created.to_dict()), 200


@tasks_bp.put("/<int:task_id>")
def update_task(task_id):
    payload = request.get_json(silent=True) or {}
    email = payload.get("email") or request.args.get("email")
    if not email:
        return jsonify(error="Missing email"), 400

    repo = _repo()
    existing = repo.get(email, task_id)
    if existing is None:
        return jsonify(error="Task not found"), 404
    try:
        task = normalize_task(payload, existing)
    except ValidationError as exc:
        return jsonify(error=str(exc)), 400

    updated = repo.update(email, task_id, task)
    if updated is None:
        # Deleted between the read and the write.
        return jsonify(error="Task not found"), 404
    return jsonify(updated.to_dict()), 200


@tasks_bp.delete("/<int:task_id>")
def delete_task(task_id):
    payload = request.get_json(silent=True) or {}
    email = request.args.get("email") or payload.get("email")
    if not email:
        return jsonify(error="Missing email"), 400
    _repo().delete(email, task_id)
    return jsonify(ok=True), 200
