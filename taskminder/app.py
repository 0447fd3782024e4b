import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS


def create_app(test_config=None):
    load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"), override=False)

    app = Flask(__name__)
    app.config.from_object("taskminder.config.Config")
    if test_config:
        app.config.update(test_config)
    app.json.sort_keys = False

    # The task UI may be served from anywhere (file://, another port)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Initialize DB schema and teardown hooks
    from taskminder.utils.db import init_app as init_db

    init_db(app)

    # Register blueprints
    from taskminder.routes.task_routes import tasks_bp
    from taskminder.routes.user_routes import users_bp

    app.register_blueprint(users_bp, url_prefix="/api")
    app.register_blueprint(tasks_bp, url_prefix="/api/tasks")

    if app.config.get("REMINDERS_ENABLED") and not app.config.get("TESTING"):
        from taskminder.reminders.scheduler import init_reminders

        init_reminders(app)
    else:
        app.logger.info("Server-side reminders disabled.")

    @app.get("/api/health")
    def health():
        return jsonify(status="ok", service="taskminder"), 200

    @app.errorhandler(404)
    def not_found(_):
        return jsonify(error="Not Found"), 404

    @app.errorhandler(405)
    def method_not_allowed(_):
        return jsonify(error="Method Not Allowed"), 405

    @app.errorhandler(500)
    def server_error(_):
        return jsonify(error="Internal Server Error"), 500

    return app


if __name__ == "__main__":
    # Direct run support: python -m taskminder.app
    from taskminder.logging_setup import setup_logging

    setup_logging()
    app = create_app()
    app.run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "4000")),
        debug=os.environ.get("FLASK_DEBUG", "0") == "1",
        # The reloader would start a second reminder timer in the child process.
        use_reloader=False,
    )
