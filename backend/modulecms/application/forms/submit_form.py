import re
from typing import Any, Dict, Optional

from modulecms.application.exceptions import FormError
from modulecms.extensions import db
from modulecms.models.form_submission import FormSubmission
from modulecms.models.post import Post
from modulecms.services import url_pattern_service
from modulecms.services.form_registry import form_registry
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEFAULT_SUCCESS_MESSAGE = "Thank you! Your submission has been received."


def clean_submission(form: Dict[str, Any], body: Dict[str, Any]):
    """Return ``(payload, errors)`` for ``body`` checked against the form's fields."""
    errors: Dict[str, str] = {}
    payload: Dict[str, Any] = {}
    for field in form.get("fields") or []:
        key = field["slug"]
        raw = body.get(key)
        value = raw.strip() if isinstance(raw, str) else raw

        if field.get("required") and value in (None, ""):
            errors[key] = "This field is required."
            continue
        if field.get("type") == "email" and isinstance(value, str) and value and not EMAIL_RE.match(value):
            errors[key] = "Please enter a valid email address."
            continue

        if field.get("type") == "boolean":
            payload[key] = value in (True, "true", "on", "1", 1)
        else:
            payload[key] = value
    return payload, errors


def _thank_you_path(post_id: Optional[str]) -> Optional[str]:
    if not post_id:
        return None
    post = db.session.get(Post, post_id)
    if post is None or post.status != "published":
        return None
    return url_pattern_service.build_post_path(post)


def submit_form(
    *,
    slug: str,
    body: Dict[str, Any],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Dict[str, Any]:
    form = form_registry.get(slug)
    if form is None:
        raise FormError("Form not found", 404, {"slug": slug})

    payload, errors = clean_submission(form, body or {})
    if errors:
        raise FormError("Submission failed validation", 400, {"errors": errors})

    submission = FormSubmission()
    submission.form_slug = slug
    submission.payload = payload
    submission.ip_address = ip_address
    submission.user_agent = (user_agent or "")[:512] or None

    with transactional():
        db.session.add(submission)
        db.session.flush()
        log_action(
            action="form.submit",
            entity_type="form",
            entity_id=slug,
            payload={"submission_id": submission.id},
        )

    event = {"form_slug": slug, "submission_id": submission.id, "payload": payload}
    webhook_service.dispatch("form.submitted", event)
    if form.get("subscriptions"):
        webhook_service.dispatch_to(form["subscriptions"], "form.submitted", event)

    return {
        "id": submission.id,
        "redirect_to": _thank_you_path(form.get("thank_you_post_id")),
        "success_message": form.get("success_message") or DEFAULT_SUCCESS_MESSAGE,
    }
