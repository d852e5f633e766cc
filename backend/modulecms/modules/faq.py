from modulecms.domain.invariants.exceptions import InvariantViolation
from .base import BaseModule, ModuleConfig


class FaqModule(BaseModule):
    rendering_mode = "hybrid"

    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(
            type="faq",
            name="FAQ",
            description="Frequently asked questions",
            icon="help-circle",
            field_schema=[
                {"slug": "title", "type": "text", "label": "Title", "required": True, "translatable": True},
                {"slug": "subtitle", "type": "textarea", "label": "Subtitle", "translatable": True},
                {
                    "slug": "items",
                    "type": "repeater",
                    "label": "Questions",
                    "required": True,
                    "item": {
                        "slug": "item",
                        "type": "object",
                        "fields": [
                            {"slug": "question", "type": "text", "required": True, "translatable": True},
                            {"slug": "answer", "type": "textarea", "required": True, "translatable": True},
                            {"slug": "linkLabel", "type": "text"},
                            {"slug": "linkUrl", "type": "link"},
                        ],
                    },
                },
            ],
            default_props={
                "title": "Frequently asked questions",
                "subtitle": None,
                "items": [
                    {"question": "Lorem ipsum?", "answer": "Dolor sit amet."},
                ],
            },
        )

    def validate(self, props):
        super().validate(props)
        items = (props or {}).get("items")
        if not isinstance(items, list):
            raise InvariantViolation("FAQ items must be a list")
        return True
