import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List

import requests
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.webhook_delivery import WebhookDelivery

logger = logging.getLogger(__name__)

WEBHOOK_EVENTS = (
    "post.created",
    "post.updated",
    "post.published",
    "post.unpublished",
    "post.deleted",
    "post.restored",
    "media.uploaded",
    "media.deleted",
    "user.created",
    "user.updated",
    "settings.updated",
    "form.submitted",
)


def sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


class WebhookService:
    """
    Signed JSON POSTs to the endpoints configured in ``WEBHOOKS``.

    Each endpoint is ``{"id", "url", "events", "secret", "headers", "active"}``.
    """

    def is_enabled(self) -> bool:
        return bool(current_app.config.get("WEBHOOKS_ENABLED"))

    def configured(self) -> List[Dict[str, Any]]:
        raw = current_app.config.get("WEBHOOKS") or []
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                logger.warning("WEBHOOKS is not valid JSON; ignoring")
                return []
        return [hook for hook in raw if isinstance(hook, dict) and hook.get("url")]

    def webhooks_for(self, event: str) -> List[Dict[str, Any]]:
        if not self.is_enabled():
            return []
        return [
            hook for hook in self.configured()
            if hook.get("active", True) and event in (hook.get("events") or [])
        ]

    def _headers(self, hook: Dict[str, Any], body: str, event: str, timestamp: str, attempt: int) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Event": event,
            "X-Webhook-Timestamp": timestamp,
            "X-Webhook-Delivery-Attempt": str(attempt),
            **(hook.get("headers") or {}),
        }
        secret = hook.get("secret") or current_app.config.get("WEBHOOK_SECRET")
        if secret:
            headers["X-Webhook-Signature"] = f"sha256={sign(body, secret)}"
        return headers

    def deliver(self, hook: Dict[str, Any], event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = json.dumps(payload, default=str)
        max_retries = int(hook.get("max_retries") or current_app.config.get("WEBHOOK_MAX_RETRIES", 3))
        timeout = float(hook.get("timeout") or current_app.config.get("WEBHOOK_TIMEOUT", 5))
        backoff = float(current_app.config.get("WEBHOOK_RETRY_BACKOFF", 1))
        hook_id = str(hook.get("id") or hook["url"])

        attempt = 1
        while True:
            started = time.monotonic()
            delivery = WebhookDelivery()
            delivery.webhook_id = hook_id
            delivery.event = event
            delivery.payload = payload
            delivery.attempt = attempt
            error = None
            status_code = None
            try:
                response = requests.post(
                    hook["url"],
                    data=body,
                    headers=self._headers(hook, body, event, payload["timestamp"], attempt),
                    timeout=timeout,
                )
                status_code = response.status_code
                success = response.ok
                if not success:
                    error = f"HTTP {status_code}"
            except requests.RequestException as exc:
                success = False
                error = str(exc)

            delivery.status_code = status_code
            delivery.success = success
            delivery.error = error
            delivery.duration_ms = int((time.monotonic() - started) * 1000)
            db.session.add(delivery)

            retryable = not success and (status_code is None or status_code >= 500)
            if success or not retryable or attempt >= max_retries:
                if not success:
                    logger.warning("Webhook %s failed for %s after %d attempt(s): %s", hook_id, event, attempt, error)
                return {
                    "webhook_id": hook_id,
                    "success": success,
                    "status_code": status_code,
                    "error": error,
                    "attempts": attempt,
                }

            time.sleep(backoff * (2 ** (attempt - 1)))
            attempt += 1

    def dispatch(self, event: str, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Deliver ``event`` to every subscribed endpoint and commit the delivery log."""
        return self.dispatch_to(self.webhooks_for(event), event, data)

    def dispatch_to(self, hooks: List[Dict[str, Any]], event: str, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Deliver ``event`` to explicit endpoints, such as a form's own subscriptions."""
        hooks = [hook for hook in hooks if isinstance(hook, dict) and hook.get("url")]
        if not hooks or not self.is_enabled():
            return []

        payload = {"event": event, "timestamp": utcnow().isoformat(), "data": data}
        results = [self.deliver(hook, event, payload) for hook in hooks]
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to store webhook deliveries for %s", event)
        return results


webhook_service = WebhookService()
