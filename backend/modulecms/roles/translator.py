TRANSLATOR_ROLE = {
    "name": "translator",
    "label": "Translator",
    "description": "Creates and edits translations through the review workflow.",
    "permissions": [
        "admin.access",
        "posts.edit",
        "posts.review.save",
        "media.view",
        "globals.view",
    ],
}
