from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from shortlink.app import build_app, create_app, main
from shortlink.config import Config, DatabaseConfig, ServerConfig
from shortlink.database import run_migration
from shortlink.entities import UrlClick
from shortlink.errors import internal_server_error
from shortlink.repositories import UrlClickRepository, UrlMappingRepository
from shortlink.usecases import CHARSET, UrlMappingUsecase

BASE = "http://sho.rt/"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    run_migration(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def mapping_repo(engine):
    return UrlMappingRepository(engine)


@pytest.fixture
def usecase(engine, mapping_repo):
    return UrlMappingUsecase(mapping_repo, UrlClickRepository(engine))


@pytest.fixture
def client(usecase):
    return create_app(usecase, BASE).test_client()


class _FailingUsecase:
    def __init__(self, error):
        self.error = error

    def shorten_url(self, long_url, expires_at=None):
        raise self.error

    def get_by_short_code(self, short_code):
        raise self.error

    def resolve_and_log(self, short_code, ip_address, user_agent):
        raise self.error


def _shorten(client, url):
    return client.post("/api/v1/shorten-url", json={"long_url": url})


def test_shorten_returns_mapping(client):
    response = _shorten(client, "https://example.com/a")
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Short URL created successfully"
    data = body["data"]
    assert data["long_url"] == "https://example.com/a"
    assert len(data["short_code"]) == 6
    assert all(ch in CHARSET for ch in data["short_code"])
    assert data["short_url"] == BASE + data["short_code"]
    assert data["expires_at"] is not None


def test_shorten_twice_is_refused(client):
    _shorten(client, "https://example.com/dup")
    response = _shorten(client, "https://example.com/dup")
    assert response.status_code == 400
    assert response.get_json() == {
        "status": 400,
        "message": "URL already exists and not expired",
    }


def test_shorten_invalid_payload(client):
    response = client.post("/api/v1/shorten-url", data="not json")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid request payload"


def test_shorten_empty_body(client):
    response = client.post("/api/v1/shorten-url", data="")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid request payload"


def test_shorten_after_expiry_creates_new_code(client, mapping_repo):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    mapping_repo.create_short_url("https://example.com/old", "oldone", past)
    response = _shorten(client, "https://example.com/old")
    assert response.status_code == 200
    assert response.get_json()["data"]["short_code"] != "oldone"


def test_shorten_without_base_url(usecase):
    client = create_app(usecase, "").test_client()
    response = _shorten(client, "https://example.com/b")
    assert response.status_code == 500
    assert response.get_json()["message"] == "Base URL configuration not found"


def test_shorten_unexpected_error():
    client = create_app(_FailingUsecase(RuntimeError("boom")), BASE).test_client()
    response = _shorten(client, "https://example.com/c")
    assert response.status_code == 500
    assert response.get_json()["message"] == "Unexpected error in shorten URL"


def test_lookup_round_trip(client):
    created = _shorten(client, "https://example.com/look").get_json()["data"]
    response = client.get(
        "/api/v1/get-long-url-data", query_string={"short_code": created["short_code"]}
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "URL mapping retrieved successfully"
    assert body["data"] == created


def test_lookup_requires_code(client):
    response = client.get("/api/v1/get-long-url-data")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Short code is required"


def test_lookup_unknown_code(client):
    response = client.get("/api/v1/get-long-url-data", query_string={"short_code": "nope"})
    assert response.status_code == 404
    assert response.get_json()["message"] == "Short URL not found"


def test_lookup_expired_code(client, mapping_repo):
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    mapping_repo.create_short_url("https://example.com/x", "expd01", past)
    response = client.get("/api/v1/get-long-url-data", query_string={"short_code": "expd01"})
    assert response.status_code == 400
    assert response.get_json()["message"] == "Short URL has expired"


def test_lookup_unexpected_error():
    client = create_app(_FailingUsecase(RuntimeError("boom")), BASE).test_client()
    response = client.get("/api/v1/get-long-url-data", query_string={"short_code": "abc"})
    assert response.status_code == 500
    assert response.get_json()["message"] == "Unexpected error"


def test_redirect_and_click_logged(client, engine):
    created = _shorten(client, "https://example.com/target").get_json()["data"]
    response = client.get(
        "/" + created["short_code"], headers={"User-Agent": "pytest-agent"}
    )
    assert response.status_code == 301
    assert response.headers["Location"] == "https://example.com/target"
    with Session(engine) as session:
        clicks = session.scalars(select(UrlClick)).all()
    assert len(clicks) == 1
    assert clicks[0].user_agent == "pytest-agent"
    assert clicks[0].ip_address.startswith("127.0.0.1")


def test_redirect_unknown_code(client):
    response = client.get("/missing")
    assert response.status_code == 404
    assert response.get_data(as_text=True) == "Short URL not found\n"


def test_redirect_expired_code_is_gone(client, mapping_repo):
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    mapping_repo.create_short_url("https://example.com/gone", "gone01", past)
    response = client.get("/gone01")
    assert response.status_code == 410
    assert response.get_data(as_text=True) == "Short URL has expired\n"


@pytest.mark.parametrize("error", [RuntimeError("boom"), internal_server_error("db down")])
def test_redirect_internal_error(error):
    client = create_app(_FailingUsecase(error), BASE).test_client()
    response = client.get("/abcdef")
    assert response.status_code == 500
    assert response.get_data(as_text=True) == "Internal server error\n"


@pytest.mark.parametrize("path", ["/api", "/favicon.ico"])
def test_reserved_paths(client, path):
    response = client.get(path)
    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found"}


def test_build_app_uses_configured_database(tmp_path):
    db_path = tmp_path / "links.sqlite"
    setup_engine = create_engine(f"sqlite:///{db_path}")
    run_migration(setup_engine)
    setup_engine.dispose()
    config = Config(
        app=ServerConfig(short_url=BASE),
        database=DatabaseConfig(driver="sqlite", name=str(db_path)),
        settings={"app.short_url": BASE},
    )
    client = build_app(config).test_client()
    data = _shorten(client, "https://example.com/built").get_json()["data"]
    assert data["short_url"] == BASE + data["short_code"]
    assert client.get("/" + data["short_code"]).headers["Location"] == "https://example.com/built"


def test_main_fails_without_config(tmp_path):
    assert main(["--config", str(tmp_path / "missing.yaml")]) == 1


def test_main_fails_without_database_section(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("app:\n  short_url: http://sho.rt/\n", encoding="utf-8")
    assert main(["--config", str(path)]) == 1