from .base import BaseModule, ModuleConfig


class HeroWithMediaModule(BaseModule):
    rendering_mode = "hybrid"

    @property
    def config(self) -> ModuleConfig:
        cta_fields = [
            {"slug": "label", "type": "text", "label": "Label", "translatable": True},
            {"slug": "url", "type": "link", "label": "Destination"},
            {"slug": "style", "type": "select", "label": "Style", "options": ["primary", "secondary", "outline"]},
        ]
        return ModuleConfig(
            type="hero-with-media",
            name="Hero with Media",
            description="Hero section with a supporting image beside the headline",
            icon="image",
            field_schema=[
                {"slug": "title", "type": "text", "label": "Title", "required": True, "translatable": True},
                {"slug": "subtitle", "type": "textarea", "label": "Subtitle", "translatable": True},
                {"slug": "image", "type": "media", "label": "Image", "config": {"storeAs": "id"}},
                {"slug": "imagePosition", "type": "select", "label": "Image position", "options": ["left", "right"]},
                {"slug": "primaryCta", "type": "object", "label": "Primary button", "fields": cta_fields},
                {"slug": "secondaryCta", "type": "object", "label": "Secondary button", "fields": cta_fields},
            ],
            default_props={
                "title": "Lorem ipsum dolor sit amet",
                "subtitle": "Consectetur adipiscing elit.",
                "image": None,
                "imagePosition": "right",
                "primaryCta": {"label": "Get started", "url": "#", "style": "primary"},
                "secondaryCta": None,
            },
        )
