import logging

from flask import Flask
from .extensions import db, migrate, login_manager, cors
from .logging_setup import configure_logging

log = logging.getLogger(__name__)

def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", [])}},
                  supports_credentials=True)

    from . import models
    from .models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    from .api import register_error_handlers
    register_error_handlers(app)

    from .blueprints.auth import bp as auth_bp
    from .blueprints.users import bp as users_bp
    from .blueprints.configuration import bp as config_bp
    from .blueprints.academics import bp as academics_bp
    from .blueprints.students import bp as students_bp
    from .blueprints.teachers import bp as teachers_bp
    from .blueprints.payroll import bp as payroll_bp
    from .blueprints.finance import bp as finance_bp
    from .blueprints.expenses import bp as expenses_bp
    from .blueprints.timetable import bp as timetable_bp
    from .blueprints.exams import bp as exams_bp
    from .blueprints.lectures import bp as lectures_bp
    from .blueprints.portal import bp as portal_bp
    from .blueprints.website import bp as website_bp
    from .blueprints.seats import bp as seats_bp
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(config_bp, url_prefix="/api/config")
    app.register_blueprint(academics_bp, url_prefix="/api")
    app.register_blueprint(students_bp, url_prefix="/api/students")
    app.register_blueprint(teachers_bp, url_prefix="/api/teachers")
    app.register_blueprint(payroll_bp, url_prefix="/api/payroll")
    app.register_blueprint(finance_bp, url_prefix="/api/finance")
    app.register_blueprint(expenses_bp, url_prefix="/api/expenses")
    app.register_blueprint(timetable_bp, url_prefix="/api/timetable")
    app.register_blueprint(exams_bp, url_prefix="/api/exams")
    app.register_blueprint(lectures_bp, url_prefix="/api/lectures")
    app.register_blueprint(portal_bp, url_prefix="/api/student-portal")
    app.register_blueprint(website_bp, url_prefix="/api/website")
    app.register_blueprint(seats_bp, url_prefix="/api/seats")

    from .cli import register_commands
    register_commands(app)

    @app.get("/health")
    def health():
        return {"status": "ok", "service": "academy-backend"}

    log.debug("application created with %s", config_object)
    return app
