from modulecms.domain.invariants.exceptions import InvariantViolation


def assert_hard_deletable(post) -> None:
    """Permanent deletion is reserved for archived or trashed posts."""
    if post.status != "archived" and post.deleted_at is None:
        raise InvariantViolation("Only archived or deleted posts can be permanently removed")
