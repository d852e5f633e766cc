from modulecms.models.module_instance import MODULE_SCOPES
from .exceptions import InvariantViolation


def assert_module_instance(instance):
    if instance.scope not in MODULE_SCOPES:
        raise InvariantViolation(f"Unknown module scope: {instance.scope}")

    if instance.scope == "global" and not instance.global_slug:
        raise InvariantViolation("Global modules require a global slug.")

    if instance.scope == "post" and not instance.post_id:
        raise InvariantViolation("Post-scoped modules must belong to a post.")

    if instance.props is not None and not isinstance(instance.props, dict):
        raise InvariantViolation("Module props must be an object.")


def assert_post_module(post_module):
    if post_module.order_index is None or post_module.order_index < 0:
        raise InvariantViolation("Module order must be a non-negative integer.")

    for column in ("overrides", "review_overrides", "ai_review_overrides"):
        value = getattr(post_module, column)
        if value is not None and not isinstance(value, dict):
            raise InvariantViolation(f"{column} must be an object.")
