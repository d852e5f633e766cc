from .base import BaseModule, ModuleConfig


class BlockquoteModule(BaseModule):
    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(
            type="blockquote",
            name="Blockquote",
            description="Quotation with attribution",
            icon="quote",
            field_schema=[
                {"slug": "quote", "type": "textarea", "label": "Quote", "required": True, "translatable": True},
                {"slug": "authorName", "type": "text", "label": "Author", "required": True},
                {"slug": "authorTitle", "type": "text", "label": "Author title", "translatable": True},
                {"slug": "avatar", "type": "media", "label": "Avatar", "config": {"storeAs": "id"}},
                {"slug": "backgroundColor", "type": "text", "label": "Background color"},
            ],
            default_props={
                "quote": "Lorem ipsum dolor sit amet.",
                "authorName": "Jane Doe",
                "authorTitle": None,
                "avatar": None,
                "backgroundColor": None,
            },
        )
