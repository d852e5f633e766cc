BLOG_POST_TYPE = {
    "type": "blog",
    "label": "Blog",
    "plural_label": "Blogs",
    "hierarchy_enabled": False,
    "permalinks_enabled": True,
    "module_group": {
        "name": "blog-default",
        "description": "Default Blog Module Group",
        "modules": [
            {"type": "prose", "scope": "local", "locked": True},
        ],
    },
    "url_patterns": [
        {"locale": "en", "pattern": "/blog/{slug}", "is_default": True},
    ],
}
