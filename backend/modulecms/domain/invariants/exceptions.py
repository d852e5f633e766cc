class InvariantViolation(Exception):
    """Raised when a domain rule about posts, modules or media is broken."""
