from .base import BaseModule, ModuleConfig


class CalloutModule(BaseModule):
    rendering_mode = "hybrid"

    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(
            type="callout",
            name="Callout",
            description="Call-to-action block with heading, text, media and buttons",
            icon="megaphone",
            field_schema=[
                {"slug": "title", "type": "text", "label": "Heading", "required": True, "translatable": True},
                {"slug": "prose", "type": "richtext", "label": "Prose", "translatable": True},
                {"slug": "image", "type": "media", "label": "Supporting media", "config": {"storeAs": "id"}},
                {
                    "slug": "ctas",
                    "type": "repeater",
                    "label": "Buttons",
                    "item": {
                        "slug": "cta",
                        "type": "object",
                        "fields": [
                            {"slug": "label", "type": "text", "required": True, "translatable": True},
                            {"slug": "url", "type": "link", "required": True},
                            {"slug": "style", "type": "select", "options": ["primary", "secondary", "outline"]},
                        ],
                    },
                },
                {"slug": "variant", "type": "select", "label": "Layout", "options": ["centered", "split-left", "split-right"]},
            ],
            default_props={
                "title": "Lorem ipsum dolor sit amet",
                "prose": None,
                "ctas": [
                    {"label": "Lorem Ipsum", "url": "#", "style": "primary"},
                    {"label": "Dolor Sit", "url": "#", "style": "outline"},
                ],
                "variant": "centered",
            },
        )
