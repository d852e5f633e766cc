def normalize_module_instance(instance, usage_count=None):
    data = {
        "id": instance.id,
        "type": instance.type,
        "scope": instance.scope,
        "global_slug": instance.global_slug,
        "global_label": instance.global_label,
        "post_id": instance.post_id,
        "props": instance.props or {},
        "updated_at": instance.updated_at.isoformat() if instance.updated_at else None,
    }
    if usage_count is not None:
        data["usage_count"] = usage_count
    return data


def normalize_module_group(group):
    return {
        "id": group.id,
        "name": group.name,
        "post_type": group.post_type,
        "description": group.description,
        "locked": bool(group.locked),
        "modules": [
            {
                "id": entry.id,
                "type": entry.type,
                "scope": entry.scope,
                "global_slug": entry.global_slug,
                "default_props": entry.default_props or {},
                "order_index": entry.order_index,
                "locked": bool(entry.locked),
            }
            for entry in sorted(group.modules, key=lambda e: e.order_index)
        ],
    }
