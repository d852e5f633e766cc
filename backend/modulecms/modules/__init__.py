from .base import BaseModule, ModuleConfig
from .hero import HeroModule
from .hero_with_media import HeroWithMediaModule
from .prose import ProseModule
from .callout import CalloutModule
from .blockquote import BlockquoteModule
from .faq import FaqModule
from .gallery import GalleryModule
from .statistics import StatisticsModule

BUILTIN_MODULES = (
    HeroModule,
    HeroWithMediaModule,
    ProseModule,
    CalloutModule,
    BlockquoteModule,
    FaqModule,
    GalleryModule,
    StatisticsModule,
)

__all__ = [
    "BaseModule",
    "ModuleConfig",
    "BUILTIN_MODULES",
]
