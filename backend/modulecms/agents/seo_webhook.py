import os

SEO_WEBHOOK_AGENT = {
    "id": "seo-webhook",
    "name": "SEO Webhook",
    "description": "Sends the post to an external SEO service and stages its suggestions.",
    "type": "external",
    "enabled": True,
    "external": {
        "url": os.getenv("AGENT_SEO_WEBHOOK_URL", ""),
        "secret": os.getenv("AGENT_SEO_WEBHOOK_SECRET", ""),
        "secret_header": None,
        "timeout": 30,
    },
    "scopes": [
        {"scope": "dropdown", "order": 20, "enabled": True},
        {"scope": "post.publish", "order": 10, "enabled": False},
    ],
}
