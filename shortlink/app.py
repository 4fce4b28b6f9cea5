"""The HTTP application: routes for shortening, looking up and following short URLs."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from typing import Protocol

from flask import Flask, Response, jsonify, redirect, request
from sqlalchemy.exc import SQLAlchemyError

from shortlink.config import DEFAULT_CONFIG_PATH, Config, ConfigError, load_config
from shortlink.database import open_connection
from shortlink.entities import UrlMapping
from shortlink.errors import ErrorResponse, bad_request, internal_server_error
from shortlink.models import build_mapping_response, parse_mapping_request
from shortlink.repositories import UrlClickRepository, UrlMappingRepository
from shortlink.responses import error_response, success_response
from shortlink.usecases import UrlMappingUsecase

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
_RESERVED_CODES = frozenset({"api", "favicon.ico"})


class _Usecase(Protocol):
    def shorten_url(self, long_url: str, expires_at=None) -> UrlMapping: ...

    def get_by_short_code(self, short_code: str) -> UrlMapping: ...

    def resolve_and_log(
        self, short_code: str, ip_address: str, user_agent: str
    ) -> UrlMapping: ...


def _plain_error(message: str, status: int) -> Response:
    response = Response(message + "\n", status=status, mimetype="text/plain")
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


def _remote_address() -> str:
    address = request.remote_addr or ""
    port = request.environ.get("REMOTE_PORT")
    if not port:
        return address
    if ":" in address:
        return f"[{address}]:{port}"
    return f"{address}:{port}"


def create_app(usecase: _Usecase, base_url: str) -> Flask:
    """Build the Flask application serving *usecase*, with short URLs rooted at *base_url*."""
    app = Flask(__name__)

    def mapping_body(mapping: UrlMapping, message: str) -> Response:
        if not base_url:
            return error_response(internal_server_error("Base URL configuration not found"))
        return success_response(build_mapping_response(mapping, base_url), message)

    @app.post("/api/v1/shorten-url")
    def shorten_url() -> Response:
        try:
            payload = parse_mapping_request(request.get_data())
        except ErrorResponse as exc:
            return error_response(exc)
        try:
            mapping = usecase.shorten_url(payload.long_url, None)
        except ErrorResponse as exc:
            logger.error("Error in ShortenUrl usecase: %s", exc)
            return error_response(exc)
        except Exception as exc:
            logger.error("Error in ShortenUrl usecase: %s", exc)
            return error_response(internal_server_error("Unexpected error in shorten URL"))
        return mapping_body(mapping, "Short URL created successfully")

    @app.get("/api/v1/get-long-url-data")
    def get_long_url_data() -> Response:
        short_code = request.args.get("short_code", "")
        if not short_code:
            return error_response(bad_request("Short code is required"))
        try:
            mapping = usecase.get_by_short_code(short_code)
        except ErrorResponse as exc:
            return error_response(exc)
        except Exception as exc:
            logger.error("Error retrieving short URL: %s", exc)
            return error_response(internal_server_error("Unexpected error"))
        return mapping_body(mapping, "URL mapping retrieved successfully")

    @app.get("/<short_code>")
    def follow(short_code: str) -> Response:
        if short_code in _RESERVED_CODES:
            return Response(
                jsonify({"error": "Not found"}).get_data(),
                status=404,
                mimetype="application/json",
            )
        if not short_code:
            return _plain_error("Short code is required", 400)
        user_agent = request.headers.get("User-Agent", "")
        try:
            mapping = usecase.resolve_and_log(short_code, _remote_address(), user_agent)
        except ErrorResponse as exc:
            if exc.status == 404:
                return _plain_error("Short URL not found", 404)
            if exc.status == 400:
                return _plain_error("Short URL has expired", 410)
            return _plain_error("Internal server error", 500)
        except Exception as exc:
            logger.error("Error resolving short URL: %s", exc)
            return _plain_error("Internal server error", 500)
        return redirect(mapping.long_url, code=301)

    return app


def build_app(config: Config) -> Flask:
    """Connect to the configured database and build the application on top of it."""
    engine = open_connection(config)
    usecase = UrlMappingUsecase(UrlMappingRepository(engine), UrlClickRepository(engine))
    return create_app(usecase, config.get_string("app.short_url"))


def main(argv: Sequence[str] | None = None) -> int:
    """Start the HTTP server; return a non-zero status when it cannot start."""
    parser = argparse.ArgumentParser(description="Serve the URL shortener.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML configuration file")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1
    try:
        app = build_app(config)
    except (ConfigError, SQLAlchemyError, ImportError) as exc:
        logger.error("Failed to connect to database: %s", exc)
        return 1
    app.run(host=args.host, port=args.port)
    return 0