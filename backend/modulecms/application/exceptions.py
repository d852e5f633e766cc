from typing import Any, Dict, Optional


class ActionError(Exception):
    """
    Base error raised by application actions.

    Carries the HTTP status the API layer should answer with and optional
    metadata that is echoed back to the client.
    """

    status_code: int = 400

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.meta = meta or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
        }
        if self.meta:
            body["meta"] = self.meta
        return body


class CreatePostError(ActionError):
    pass


class UpdatePostError(ActionError):
    pass


class DeletePostError(ActionError):
    pass


class BulkActionError(ActionError):
    pass


class ReorderPostsError(ActionError):
    pass


class AddModuleToPostError(ActionError):
    pass


class UpdatePostModuleError(ActionError):
    pass


class DeletePostModuleError(ActionError):
    pass


class ReviewError(ActionError):
    pass


class RevisionError(ActionError):
    pass


class TranslationError(ActionError):
    pass


class GlobalModuleError(ActionError):
    pass


class ModuleGroupError(ActionError):
    pass


class CanonicalImportError(ActionError):
    pass


class MediaError(ActionError):
    pass


class MenuError(ActionError):
    pass


class FormError(ActionError):
    pass


class AgentError(ActionError):
    pass
