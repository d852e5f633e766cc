from .base import BaseModule, ModuleConfig


class GalleryModule(BaseModule):
    rendering_mode = "hybrid"

    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(
            type="gallery",
            name="Gallery",
            description="Grid or masonry of images with captions",
            icon="images",
            field_schema=[
                {
                    "slug": "images",
                    "type": "repeater",
                    "label": "Images",
                    "required": True,
                    "item": {
                        "type": "object",
                        "fields": [
                            {"slug": "url", "type": "media", "required": True},
                            {"slug": "alt", "type": "text", "required": True, "translatable": True},
                            {"slug": "caption", "type": "textarea", "translatable": True},
                        ],
                    },
                },
                {"slug": "layout", "type": "select", "label": "Layout", "options": ["grid", "masonry"]},
                {"slug": "columns", "type": "number", "label": "Columns"},
            ],
            default_props={
                "images": [],
                "layout": "grid",
                "columns": 3,
            },
        )
