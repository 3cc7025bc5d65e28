import pytest

from quickhttp import HttpConfig, Request


@pytest.fixture
def make_request():
    """Build a quickhttp Request through Werkzeug's EnvironBuilder."""

    def factory(path="/", config=None, **kwargs):
        request = Request.from_values(path, **kwargs)
        if config is not None:
            request.config = config
        return request

    return factory


@pytest.fixture
def upload_config(tmp_path):
    return HttpConfig({"upload_root": str(tmp_path)})
