from .user import User
from .post import Post, POST_STATUSES
from .module_instance import ModuleInstance, MODULE_SCOPES
from .post_module import PostModule
from .module_group import ModuleGroup, ModuleGroupModule
from .module_scope_restriction import ModuleScopeRestriction
from .media_asset import MediaAsset
from .audit_log import AuditLog
from .post_revision import PostRevision
from .url_pattern import UrlPattern, UrlRedirect
from .site_setting import SiteSetting
from .menu import Menu, MenuItem
from .form_submission import FormSubmission
from .agent_execution import AgentExecution
from .webhook_delivery import WebhookDelivery

__all__ = [
    "User",
    "Post",
    "POST_STATUSES",
    "ModuleInstance",
    "MODULE_SCOPES",
    "PostModule",
    "ModuleGroup",
    "ModuleGroupModule",
    "ModuleScopeRestriction",
    "MediaAsset",
    "AuditLog",
    "PostRevision",
    "UrlPattern",
    "UrlRedirect",
    "SiteSetting",
    "Menu",
    "MenuItem",
    "FormSubmission",
    "AgentExecution",
    "WebhookDelivery",
]
