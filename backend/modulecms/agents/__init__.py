from .content_enhancer import CONTENT_ENHANCER_AGENT
from .seo_webhook import SEO_WEBHOOK_AGENT
from .translator import TRANSLATOR_AGENT

BUILTIN_AGENTS = (CONTENT_ENHANCER_AGENT, SEO_WEBHOOK_AGENT, TRANSLATOR_AGENT)
