import csv
import io

from flask import Response, jsonify, request
from flask_jwt_extended import jwt_required
from modulecms.application.forms.submit_form import submit_form
from modulecms.models.form_submission import FormSubmission
from modulecms.normalizers.pagination import normalize_pagination
from modulecms.services.form_registry import form_registry
from modulecms.utils.decorators import permission_required
from modulecms.utils.pagination import apply_cursor, paginate_cursor
from .helpers import json_body
from . import v1_bp


def _submission_dict(submission):
    return {
        "id": submission.id,
        "form_slug": submission.form_slug,
        "payload": submission.payload or {},
        "ip_address": submission.ip_address,
        "created_at": submission.created_at.isoformat(),
    }


def _form_or_404(slug):
    form = form_registry.get(slug)
    if form is None:
        return None, (jsonify({"error": "Form not found"}), 404)
    return form, None


@v1_bp.route("/forms", methods=["GET"])
@jwt_required()
@permission_required("forms.view")
def list_forms():
    return jsonify([
        {key: value for key, value in form.items() if key != "subscriptions"}
        for form in form_registry.list()
    ]), 200


@v1_bp.route("/forms/<slug>", methods=["GET"])
def get_form(slug):
    """Public form definition, used by the site to render the form."""
    form, missing = _form_or_404(slug)
    if missing:
        return missing
    return jsonify({
        "slug": form["slug"],
        "title": form.get("title"),
        "description": form.get("description"),
        "fields": form.get("fields") or [],
    }), 200


@v1_bp.route("/forms/<slug>/submit", methods=["POST"])
def submit_form_route(slug):
    body = json_body() or request.form.to_dict()
    result = submit_form(
        slug=slug,
        body=body,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify(result), 201


@v1_bp.route("/forms/<slug>/submissions", methods=["GET"])
@jwt_required()
@permission_required("forms.view")
def list_submissions(slug):
    _, missing = _form_or_404(slug)
    if missing:
        return missing

    limit = min(int(request.args.get("limit", 20)), 100)
    query = FormSubmission.query.filter(FormSubmission.form_slug == slug)
    query = apply_cursor(query, model=FormSubmission, cursor=request.args.get("cursor"))
    items, meta = paginate_cursor(query, model=FormSubmission, limit=limit)
    return jsonify(normalize_pagination(items, _submission_dict, cursor=meta)), 200


@v1_bp.route("/forms/<slug>/submissions/export", methods=["GET"])
@jwt_required()
@permission_required("forms.submissions.export")
def export_submissions(slug):
    form, missing = _form_or_404(slug)
    if missing:
        return missing

    keys = [field["slug"] for field in form.get("fields") or []]
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["id", "created_at"] + keys)
    rows = (
        FormSubmission.query
        .filter(FormSubmission.form_slug == slug)
        .order_by(FormSubmission.created_at.asc())
        .all()
    )
    for row in rows:
        payload = row.payload or {}
        writer.writerow([row.id, row.created_at.isoformat()] + [payload.get(k, "") for k in keys])

    return Response(
        buffer.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{slug}-submissions.csv"'},
    )
