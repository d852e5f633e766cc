import importlib

import pytest

from modulecms import config


@pytest.fixture
def reload_config(monkeypatch):
    """Re-evaluate the config classes against a patched environment."""
    def _reload(**env):
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return importlib.reload(config)
    yield _reload
    monkeypatch.undo()
    importlib.reload(config)


class TestEnvironmentNames:

    def test_keys_read_variables_of_the_same_name(self, reload_config):
        module = reload_config(
            WEBHOOKS_ENABLED="true",
            WEBHOOKS='[{"url": "https://hooks.example/cms"}]',
            RATE_LIMIT_API_REQUESTS="7",
            RATE_LIMIT_AUTH_WINDOW="30",
            REVISIONS_LIMIT="5",
            UPLOAD_FOLDER="files",
            PROTECTED_ACCESS_USERNAME="guest",
        )

        cfg = module.BaseConfig
        assert cfg.WEBHOOKS_ENABLED is True
        assert cfg.WEBHOOKS == '[{"url": "https://hooks.example/cms"}]'
        assert cfg.RATE_LIMIT_API_REQUESTS == 7
        assert cfg.RATE_LIMIT_AUTH_WINDOW == 30
        assert cfg.REVISIONS_LIMIT == 5
        assert cfg.UPLOAD_FOLDER == "files"
        assert cfg.PROTECTED_ACCESS_USERNAME == "guest"

    def test_prefixed_names_are_ignored(self, reload_config):
        module = reload_config(CMS_WEBHOOKS_ENABLED="true", CMS_REVISIONS_LIMIT="5")

        assert module.BaseConfig.WEBHOOKS_ENABLED is False
        assert module.BaseConfig.REVISIONS_LIMIT == 20
