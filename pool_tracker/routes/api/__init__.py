from flask import Blueprint

bp = Blueprint("api", __name__)

from pool_tracker.routes.api import routes  # noqa: F401, E402 - registers views
