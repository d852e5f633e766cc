from unittest.mock import MagicMock, patch

import requests

from modulecms.models.webhook_delivery import WebhookDelivery
from modulecms.services.webhook_service import sign, webhook_service

HOOK = {"id": "site-build", "url": "https://hooks.example.com/build", "events": ["post.published"], "secret": "s3cret"}


def _enable(app, hooks):
    app.config["WEBHOOKS_ENABLED"] = True
    app.config["WEBHOOKS"] = hooks
    app.config["WEBHOOK_RETRY_BACKOFF"] = 0


class TestWebhookService:

    def test_disabled_by_default_in_tests(self, app):
        assert webhook_service.dispatch("post.published", {"id": "1"}) == []

    def test_only_subscribed_events_are_sent(self, app):
        _enable(app, [HOOK])
        assert webhook_service.webhooks_for("post.deleted") == []
        assert webhook_service.webhooks_for("post.published") == [HOOK]

    @patch("modulecms.services.webhook_service.requests.post")
    def test_delivery_is_signed_and_logged(self, mock_post, app):
        _enable(app, [HOOK])
        mock_post.return_value = MagicMock(status_code=200, ok=True)

        results = webhook_service.dispatch("post.published", {"id": "p1"})

        assert results[0]["success"] is True
        _, kwargs = mock_post.call_args
        headers = kwargs["headers"]
        assert headers["X-Webhook-Event"] == "post.published"
        assert headers["X-Webhook-Signature"] == f"sha256={sign(kwargs['data'], 's3cret')}"
        assert WebhookDelivery.query.filter_by(webhook_id="site-build", success=True).count() == 1

    @patch("modulecms.services.webhook_service.requests.post")
    def test_server_errors_are_retried(self, mock_post, app):
        _enable(app, [{**HOOK, "max_retries": 3}])
        mock_post.side_effect = [
            MagicMock(status_code=502, ok=False),
            requests.ConnectionError("refused"),
            MagicMock(status_code=200, ok=True),
        ]

        result = webhook_service.dispatch("post.published", {"id": "p1"})[0]

        assert result["success"] is True
        assert result["attempts"] == 3
        assert WebhookDelivery.query.count() == 3

    @patch("modulecms.services.webhook_service.requests.post")
    def test_client_errors_are_not_retried(self, mock_post, app):
        _enable(app, [HOOK])
        mock_post.return_value = MagicMock(status_code=404, ok=False)

        result = webhook_service.dispatch("post.published", {"id": "p1"})[0]

        assert result == {
            "webhook_id": "site-build",
            "success": False,
            "status_code": 404,
            "error": "HTTP 404",
            "attempts": 1,
        }

    @patch("modulecms.services.webhook_service.requests.post")
    def test_publishing_a_post_fires_webhook(self, mock_post, client, admin_headers, make_post):
        post = make_post()
        _enable(client.application, [HOOK])
        mock_post.return_value = MagicMock(status_code=204, ok=True)

        client.post(f"/api/v1/posts/{post.id}/publish", headers=admin_headers)

        assert mock_post.call_count == 1
        assert mock_post.call_args.args[0] == HOOK["url"]
