from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

import pytest
from fastapi.testclient import TestClient

from tnetctl.config import Config
from tnetctl.server import create_app

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from tests.conftest import RecordingSink
    from tnetctl.manager import FakeProcessSupervisor

TOKEN = "letmein"

MakeClient = Callable[..., TestClient]


@pytest.fixture
def make_client(
    supervisor: "FakeProcessSupervisor",
    sink: "RecordingSink",
    logger: "FilteringBoundLogger",
) -> Iterator[MakeClient]:
    """Return a factory for API clients backed by the fake supervisor."""
    clients: list[TestClient] = []

    def _make(**overrides: Any) -> TestClient:  # noqa: ANN401
        config = Config.from_dict(
            {
                "server": {"status_interval": 0.05},
                "process": {"reconcile_interval": 60.0},
                **overrides,
            }
        )
        app = create_app(config, supervisor=supervisor, output_sink=sink, logger=logger)
        client = TestClient(app).__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: MakeClient) -> TestClient:
    return make_client()


@pytest.fixture
def auth_client(make_client: MakeClient) -> TestClient:
    return make_client(auth={"token": TOKEN})
