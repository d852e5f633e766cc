CONTENT_ENHANCER_AGENT = {
    "id": "content-enhancer",
    "name": "Content Enhancer",
    "description": "Tightens copy and fills in missing excerpts and SEO fields.",
    "type": "internal",
    "enabled": True,
    "internal": {
        "provider": "openai",
        "model": "gpt-4o-mini",
        "system_prompt": (
            "You are an editor for a content management system. Improve clarity "
            "and tone without changing meaning."
        ),
        "options": {"temperature": 0.4, "max_tokens": 2000},
    },
    "scopes": [
        {"scope": "dropdown", "order": 10, "enabled": True},
        {"scope": "field", "order": 10, "enabled": True},
    ],
    "open_ended_context": {
        "enabled": True,
        "label": "Editing instructions",
        "max_chars": 800,
    },
}
