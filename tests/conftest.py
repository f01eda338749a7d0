import json

import pytest
from fastapi.testclient import TestClient

from settings import Settings
from upstream import UpstreamClient

ASSET_URL = "http://upstream.test/api/asset"
BORROW_URL = "http://upstream.test/api/borrow"
EMPLOYEE_URL = "http://upstream.test/api/employee"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400


class FakeSession:
    """Stands in for requests.Session: canned responses per (method, url)."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, url, *responses):
        self.routes.setdefault((method, url), []).extend(responses)

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        queue = self.routes.get((method, url))
        if not queue:
            return FakeResponse(404, {"error": f"no route for {method} {url}"})
        # the last response repeats once the queue runs dry
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(kwargs)
        return item

    def calls_to(self, method, url):
        return [c for c in self.calls if c["method"] == method and c["url"] == url]


def borrow_wrapper(id, **data):
    return {"id": id, "data": data}


def make_settings(**overrides):
    cfg = Settings()
    cfg.ASSET_API_URL = ASSET_URL
    cfg.ASSET_API_TOKEN = "asset-token"
    cfg.BORROW_API_URL = BORROW_URL
    cfg.BORROW_API_TOKEN = "borrow-token"
    cfg.EMPLOYEE_API_URL = EMPLOYEE_URL
    cfg.EMPLOYEE_API_TOKEN = ""
    for k, v in overrides.items():
        setattr(cfg, k, v)
    return cfg


@pytest.fixture()
def fake_session():
    return FakeSession()


@pytest.fixture()
def upstream(fake_session):
    return UpstreamClient(config=make_settings(), session=fake_session)


@pytest.fixture()
def client(upstream):
    import main
    from dependencies import get_upstream
    from views import ViewRegistry

    main.app.state.views = ViewRegistry()
    main.app.dependency_overrides[get_upstream] = lambda: upstream
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
