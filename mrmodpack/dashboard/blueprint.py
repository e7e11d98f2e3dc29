"""Home page, collection API and bundle download routes."""

import json
import logging
from typing import List

from flask import (Blueprint, current_app, jsonify, redirect, render_template,
                   request, send_from_directory, url_for)

from ..errors import ApiError, BundleCancelled, MrModpackError, NotFoundError
from ..services.bundle_service import build_bundle
from ..services.matrix_service import (build_version_matrix, collect_labels,
                                       coverage, find_group)
from ..utils.versions import VersionParseError, parse_version

log = logging.getLogger(__name__)

COLLECTIONS_COOKIE = "modrinth_collections"
COOKIE_MAX_AGE = 60 * 60 * 24 * 365

dashboard_bp = Blueprint('dashboard', __name__, template_folder='../templates')
bundle_bp = Blueprint('bundles', __name__)


def _services():
    return current_app.extensions["mrmodpack"]


def read_collections() -> List[str]:
    """Collection ids stored in the cookie, oldest first."""
    raw = request.cookies.get(COLLECTIONS_COOKIE)
    if not raw:
        return []
    try:
        ids = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(ids, list):
        return []
    return [i for i in ids if isinstance(i, str)]


def _with_collections(response, ids: List[str]):
    response.set_cookie(COLLECTIONS_COOKIE, json.dumps(ids), max_age=COOKIE_MAX_AGE, samesite="Lax")
    return response


def _error(e: Exception):
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, BundleCancelled):
        return jsonify({"error": str(e)}), 504
    if isinstance(e, ApiError):
        return jsonify({"error": str(e)}), 502
    log.error(f"[API] {e}")
    return jsonify({"error": str(e)}), 500


@dashboard_bp.route('/')
def home():
    """Main page listing the saved collections, newest first."""
    return render_template('index.html', collections=list(reversed(read_collections())))


@dashboard_bp.route('/collections', methods=['POST'])
def add_collection():
    collection_id = (request.form.get('collection_id') or '').strip()
    ids = read_collections()
    if collection_id and collection_id not in ids:
        ids.append(collection_id)
    return _with_collections(redirect(url_for('dashboard.home')), ids)


@dashboard_bp.route('/collections/<collection_id>/remove', methods=['POST'])
def remove_collection(collection_id):
    ids = [i for i in read_collections() if i != collection_id]
    return _with_collections(redirect(url_for('dashboard.home')), ids)


@dashboard_bp.route('/api/collections/<collection_id>')
def api_collection(collection_id):
    """Collection details plus the game version coverage matrix."""
    try:
        catalog = _services()["catalog"]
        collection, keys = catalog.load_collection(collection_id)
        projects = catalog.index.items(keys)
        matrix = build_version_matrix(projects)
        labels = collect_labels(projects)

        return jsonify({
            "collection": {
                "id": collection.id,
                "name": collection.name,
                "description": collection.description,
                "user": collection.user,
            },
            "projects": [dict(project.to_dict(), key=key) for key, project in projects],
            "versions": [
                {
                    "version": str(version),
                    "projects": sorted(group),
                    "coverage": round(coverage(group, len(keys)), 1),
                    "labels": labels.get(version, []),
                }
                for version, group in matrix
            ],
        })
    except MrModpackError as e:
        return _error(e)


@dashboard_bp.route('/api/collections/<collection_id>/bundle', methods=['POST'])
def api_bundle(collection_id):
    """Build a zip of every mod in the collection for one game version."""
    data = request.get_json(silent=True) or {}
    try:
        version = parse_version(str(data.get('version') or ''))
    except VersionParseError as e:
        return jsonify({"error": str(e)}), 400

    try:
        services = _services()
        catalog = services["catalog"]
        collection, keys = catalog.load_collection(collection_id)
        projects = catalog.index.items(keys)

        requested = data.get('projects')
        if requested is None:
            seed = find_group(build_version_matrix(projects), version)
        else:
            if not isinstance(requested, list) or not all(isinstance(k, int) for k in requested):
                return jsonify({"error": "projects must be a list of project keys"}), 400
            unknown = set(requested) - set(keys)
            if unknown:
                return jsonify({"error": f"projects not in collection: {sorted(unknown)}"}), 400
            seed = set(requested)

        if not seed:
            return jsonify({"error": f"no project in {collection.name} supports {version}"}), 404

        cfg = current_app.config
        bundle = build_bundle(
            catalog,
            services["assembler"],
            collection.name,
            version,
            sorted(seed),
            cfg["loaders"],
            download_workers=cfg["download_workers"],
            timeout=cfg["bundle_timeout_seconds"],
            labels=collect_labels(projects).get(version, []),
        )
        return jsonify(bundle.to_dict())
    except MrModpackError as e:
        return _error(e)


@bundle_bp.route('/<path:filename>')
def download_bundle(filename):
    """Serve a bundle until its cleanup job deletes it."""
    return send_from_directory(_services()["assembler"].bundle_dir, filename, as_attachment=True)
