import pytest

from core.config import Config, ProxySettings, ShopifySettings, TargetSettings

TEST_TARGET = "http://backend.test"
TEST_SECRET = "hush"


class RecordingLogger:
    """RequestLogger that keeps events in memory."""

    def __init__(self):
        self.forwarded = []
        self.rejected = []
        self.errors = []

    def log_forward(self, method, path, target_url, status, *, duration_ms):
        self.forwarded.append((method, path, target_url, status))

    def log_rejected(self, method, path, reason):
        self.rejected.append((method, path, reason))

    def log_error(self, route, status, message):
        self.errors.append((route, status, message))


def make_config(mode="rewrite", environment="development", secret="", debug=False):
    return Config(
        proxy=ProxySettings(environment=environment, mode=mode, debug=debug),
        target=TargetSettings(base_url=TEST_TARGET),
        shopify=ShopifySettings(api_secret=secret),
    )


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def rewrite_config():
    return make_config("rewrite")


@pytest.fixture
def liquid_config():
    return make_config("liquid")


@pytest.fixture
def config_factory():
    return make_config
