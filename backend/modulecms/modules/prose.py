from .base import BaseModule, ModuleConfig


def empty_richtext(text: str = "") -> dict:
    return {
        "root": {
            "type": "root",
            "children": [
                {"type": "paragraph", "children": [{"type": "text", "text": text}]},
            ],
        }
    }


class ProseModule(BaseModule):
    rendering_mode = "hybrid"

    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(
            type="prose",
            name="Prose",
            description="Rich text content block",
            icon="text",
            field_schema=[
                {"slug": "content", "type": "richtext", "label": "Content", "required": True, "translatable": True},
                {"slug": "textAlign", "type": "select", "label": "Text alignment", "options": ["left", "center", "right"]},
            ],
            default_props={
                "content": empty_richtext("Lorem ipsum dolor sit amet."),
                "textAlign": "left",
            },
        )
