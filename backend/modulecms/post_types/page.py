PAGE_POST_TYPE = {
    "type": "page",
    "label": "Page",
    "plural_label": "Pages",
    "hierarchy_enabled": True,
    "permalinks_enabled": True,
    "module_group": {
        "name": "page-default",
        "description": "Default Page Module Group",
        "modules": [
            {"type": "hero", "scope": "local", "locked": False},
            {"type": "prose", "scope": "local", "locked": False},
        ],
    },
    # {path} expands to the parent chain
    "url_patterns": [
        {"locale": "en", "pattern": "/{path}", "is_default": True},
    ],
    "seo_defaults": {"robots_json": {"index": True, "follow": True}},
}
