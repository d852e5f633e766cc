DOCUMENTATION_POST_TYPE = {
    "type": "documentation",
    "label": "Documentation",
    "plural_label": "Documentation",
    "hierarchy_enabled": True,
    "permalinks_enabled": True,
    "module_group": {
        "name": "documentation-default",
        "description": "Default Documentation Module Group",
        "modules": [
            {"type": "prose", "scope": "local", "locked": False},
        ],
    },
    "url_patterns": [],
}
