from .exceptions import InvariantViolation


def assert_focal_point(focal):
    if focal is None:
        return
    if not isinstance(focal, dict):
        raise InvariantViolation("focalPoint must be an object with x and y.")
    for axis in ("x", "y"):
        value = focal.get(axis)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise InvariantViolation(f"focalPoint.{axis} must be a number.")
        if value < 0 or value > 1:
            raise InvariantViolation(f"focalPoint.{axis} must be between 0 and 1.")
