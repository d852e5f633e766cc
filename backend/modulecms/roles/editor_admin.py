EDITOR_ADMIN_ROLE = {
    "name": "editor_admin",
    "label": "Editor Admin",
    "description": "Senior editor: publishes, approves reviews, manages media, menus and forms. No user or system settings access.",
    "permissions": [
        "admin.access",
        "admin.settings.view",
        "posts.create",
        "posts.edit",
        "posts.publish",
        "posts.archive",
        "posts.delete",
        "posts.revisions.manage",
        "posts.export",
        "posts.review.save",
        "posts.review.approve",
        "posts.ai-review.save",
        "posts.ai-review.approve",
        "media.view",
        "media.upload",
        "media.replace",
        "media.delete",
        "media.variants.generate",
        "media.optimize",
        "menus.view",
        "menus.edit",
        "menus.delete",
        "forms.view",
        "forms.edit",
        "forms.delete",
        "forms.submissions.export",
        "globals.view",
        "globals.edit",
        "globals.delete",
        "agents.view",
        "agents.edit",
    ],
}
