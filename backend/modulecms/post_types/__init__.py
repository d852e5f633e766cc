from .page import PAGE_POST_TYPE
from .blog import BLOG_POST_TYPE
from .documentation import DOCUMENTATION_POST_TYPE

BUILTIN_POST_TYPES = (PAGE_POST_TYPE, BLOG_POST_TYPE, DOCUMENTATION_POST_TYPE)
