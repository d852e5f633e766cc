EDITOR_ROLE = {
    "name": "editor",
    "label": "Editor",
    "description": "Writes content and saves it for review; cannot publish or approve.",
    "permissions": [
        "admin.access",
        "posts.create",
        "posts.edit",
        "posts.review.save",
        "posts.ai-review.save",
        "posts.export",
        "media.view",
        "media.upload",
        "media.variants.generate",
        "menus.view",
        "forms.view",
        "globals.view",
        "agents.view",
    ],
}
