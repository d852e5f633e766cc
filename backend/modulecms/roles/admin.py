ADMIN_ROLE = {
    "name": "admin",
    "label": "Administrator",
    "description": "Full access to content, users and site settings.",
    # admin is granted every permission by the role registry
    "permissions": [
        "admin.access",
        "admin.users.manage",
        "admin.roles.manage",
        "admin.settings.view",
        "admin.settings.update",
    ],
}
