"""
Version Routes - catalog endpoints for mod versions
"""

from flask import Blueprint, current_app, redirect, request
from flask_limiter.util import get_remote_address

from api_responses import not_found_response, paginated_response, success_response
from exceptions import ValidationException
from middleware.auth import token_required, unapproved_requested
from rate_limiter import limiter
from version_filter import VersionFilter

versions_bp = Blueprint("versions", __name__, url_prefix="/api/v1")


def get_version_service():
    return current_app.extensions["version_service"]


def _ids_arg():
    ids = [i.strip() for i in request.args.get("ids", "").split(",") if i.strip()]
    if not ids:
        raise ValidationException("ids is required")
    return ids


@versions_bp.route("/health")
def health():
    return success_response({"status": "healthy", "api_version": "1.0"})


@versions_bp.route("/versions")
def list_versions():
    version_filter = VersionFilter.from_args(request.args)
    unapproved = unapproved_requested()
    service = get_version_service()

    items = service.get_versions(version_filter, unapproved)
    total = service.count_versions(version_filter, unapproved)
    if version_filter is None:
        return paginated_response(items, total, limit=len(items), offset=0)
    return paginated_response(items, total, limit=version_filter.limit, offset=version_filter.offset)


@versions_bp.route("/versions/count")
def count_versions():
    version_filter = VersionFilter.from_args(request.args)
    return success_response({"count": get_version_service().count_versions(version_filter, unapproved_requested())})


@versions_bp.route("/versions/batch")
def versions_by_ids():
    versions = get_version_service().get_versions_by_ids(_ids_arg())
    if versions is None:
        return not_found_response("Versions")
    return success_response(versions)


@versions_bp.route("/versions/<version_id>")
def get_version(version_id):
    version = get_version_service().get_version(version_id)
    if version is None:
        return not_found_response("Version", version_id)
    return success_response(version)


@versions_bp.route("/versions/<version_id>/dependencies")
def get_version_dependencies(version_id):
    return success_response(get_version_service().get_dependencies(version_id))


@versions_bp.route("/versions/<version_id>/download")
def download_version(version_id):
    url = get_version_service().download_version(version_id, get_remote_address())
    return redirect(url, code=302)


@versions_bp.route("/mods/latest-versions")
def mods_latest_versions():
    return success_response(get_version_service().get_latest_versions(_ids_arg(), unapproved_requested()))


@versions_bp.route("/mods/<mod_id>/latest-versions")
def mod_latest_versions(mod_id):
    return success_response(get_version_service().get_latest_versions(mod_id, unapproved_requested()))


@versions_bp.route("/mods/<mod_id>/versions", methods=["GET"])
def list_mod_versions(mod_id):
    version_filter = VersionFilter.from_args(request.args)
    return success_response(get_version_service().get_mod_versions(mod_id, version_filter, unapproved_requested()))


@versions_bp.route("/mods/<mod_id>/versions", methods=["POST"])
@limiter.limit("20 per minute")
@token_required
def create_mod_version(mod_id):
    draft = request.get_json(silent=True)
    if draft is None:
        raise ValidationException("request body must be JSON")
    version = get_version_service().create_version(mod_id, draft)
    return success_response(version, message="Version created", status_code=201)


@versions_bp.route("/mods/<mod_id>/versions/<version_id>")
def get_mod_version(mod_id, version_id):
    version = get_version_service().get_mod_version(mod_id, version_id)
    if version is None:
        return not_found_response("Version", version_id)
    return success_response(version)


@versions_bp.route("/mods/<mod_id>/versions/by-name/<path:name>")
def get_mod_version_by_name(mod_id, name):
    version = get_version_service().get_version_by_name(mod_id, name)
    if version is None:
        return not_found_response("Version", name)
    return success_response(version)
