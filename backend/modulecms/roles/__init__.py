from .admin import ADMIN_ROLE
from .editor_admin import EDITOR_ADMIN_ROLE
from .editor import EDITOR_ROLE
from .translator import TRANSLATOR_ROLE

BUILTIN_ROLES = (ADMIN_ROLE, EDITOR_ADMIN_ROLE, EDITOR_ROLE, TRANSLATOR_ROLE)
