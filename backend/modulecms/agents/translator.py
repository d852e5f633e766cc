TRANSLATOR_AGENT = {
    "id": "translator",
    "name": "Translator",
    "description": "Translates a post's text fields into its locale and stages them for review.",
    "type": "internal",
    "enabled": True,
    "internal": {
        "provider": "anthropic",
        "model": "claude-sonnet-4-5",
        "system_prompt": (
            "You are a professional translator. Translate content accurately while "
            "preserving tone, formatting and proper nouns."
        ),
        "options": {"temperature": 0.3, "max_tokens": 4096},
    },
    "scopes": [
        {"scope": "dropdown", "order": 30, "enabled": True},
        {"scope": "field", "order": 20, "enabled": True},
    ],
    "open_ended_context": {
        "enabled": True,
        "label": "Translation instructions",
        "max_chars": 800,
    },
}
