import json

import pytest

from core import config as config_module
from core.config import Config, build_config, load_config
from core.exceptions import ConfigurationError


def test_defaults():
    config = Config()
    assert config.target.base_url == "http://localhost:3003"
    assert config.target.timeout == 30.0
    assert config.target.max_redirects == 5
    assert config.proxy.route_prefix == "/proxy"
    assert config.proxy.port == 3000
    assert config.external_path == "/apps/a"
    assert not config.enforce_signature


def test_env_overrides():
    config = build_config(
        {},
        {
            "TARGET_DOMAIN": "https://shop-backend.example.com/",
            "SHOPIFY_API_SECRET": "s3cret",
            "PROXY_PREFIX": "tools",
            "PROXY_SUBPATH": "store",
            "PORT": "8080",
            "NODE_ENV": "production",
            "PROXY_MODE": "liquid",
        },
    )
    assert config.target.base_url == "https://shop-backend.example.com"
    assert config.shopify.api_secret == "s3cret"
    assert config.external_path == "/tools/store"
    assert config.proxy.port == 8080
    assert config.enforce_signature
    assert config.proxy.mode == "liquid"


def test_env_overrides_file_values():
    config = build_config({"proxy": {"port": 4000, "mode": "liquid"}}, {"PORT": "5000"})
    assert config.proxy.port == 5000
    assert config.proxy.mode == "liquid"


def test_route_prefix_normalized():
    assert build_config({"proxy": {"route_prefix": "gateway/"}}, {}).proxy.route_prefix == "/gateway"


@pytest.mark.parametrize(
    "environ",
    [
        {"TARGET_DOMAIN": "ftp://nope"},
        {"PORT": "not-a-port"},
        {"PROXY_MODE": "stream"},
    ],
)
def test_invalid_values_raise(environ):
    with pytest.raises(ConfigurationError):
        build_config({}, environ)


class TestLoadConfig:
    @pytest.fixture(autouse=True)
    def _config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path)
        monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.json")
        return tmp_path

    def test_creates_default_file(self, tmp_path):
        config = load_config({})
        assert config == Config()
        assert json.loads((tmp_path / "config.json").read_text())["proxy"]["port"] == 3000

    def test_reads_existing_file(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"target": {"base_url": "http://b:9"}}))
        assert load_config({}).target.base_url == "http://b:9"

    def test_corrupt_file_backed_up(self, tmp_path):
        (tmp_path / "config.json").write_text("{not json")
        assert load_config({}) == Config()
        assert (tmp_path / "config.json.bak").read_text() == "{not json"
