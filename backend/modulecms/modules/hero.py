from .base import BaseModule, ModuleConfig


class HeroModule(BaseModule):
    """Full-width page header with a headline and an optional call to action."""

    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(
            type="hero",
            name="Hero Section",
            description="Large headline with subtitle and call to action",
            icon="layout-top",
            field_schema=[
                {"slug": "title", "type": "text", "label": "Title", "required": True, "translatable": True},
                {"slug": "subtitle", "type": "textarea", "label": "Subtitle", "translatable": True},
                {"slug": "ctaText", "type": "text", "label": "Button text", "translatable": True},
                {"slug": "ctaUrl", "type": "link", "label": "Button link"},
                {"slug": "backgroundImage", "type": "media", "label": "Background image"},
                {
                    "slug": "alignment",
                    "type": "select",
                    "label": "Alignment",
                    "options": ["left", "center", "right"],
                },
            ],
            default_props={
                "title": "Welcome",
                "subtitle": "",
                "ctaText": None,
                "ctaUrl": None,
                "backgroundImage": None,
                "alignment": "center",
            },
        )
