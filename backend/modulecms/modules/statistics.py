from .base import BaseModule, ModuleConfig


class StatisticsModule(BaseModule):
    rendering_mode = "hybrid"

    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(
            type="statistics",
            name="Statistics",
            description="Animated numeric highlights",
            icon="bar-chart",
            field_schema=[
                {
                    "slug": "stats",
                    "type": "repeater",
                    "label": "Statistics",
                    "required": True,
                    "item": {
                        "slug": "item",
                        "type": "object",
                        "fields": [
                            {"slug": "value", "type": "number", "required": True},
                            {"slug": "suffix", "type": "text"},
                            {"slug": "label", "type": "text", "required": True, "translatable": True},
                        ],
                    },
                },
            ],
            default_props={
                "stats": [
                    {"value": 100, "suffix": "+", "label": "Customers"},
                    {"value": 99, "suffix": "%", "label": "Uptime"},
                ],
            },
        )
