# shortlink

A small web service that turns long URLs into short codes, redirects visitors
from a short code to the original address, and records every click in a
relational database.

## Running the service

Write a `config.yaml` (see below), make sure the tables exist (see
"Database"), then run:

```
shortlink
```

Options:

- `--config PATH` – the YAML configuration file (default `config.yaml`).
- `--host ADDRESS` – the address to listen on (default `0.0.0.0`).
- `--port PORT` – the port to listen on (default `8080`).

The listening port is taken from `--port` only; `app.port` in the
configuration file is read but not used by the command. The command exits with
status 1 when the configuration cannot be read or the database cannot be
reached. It serves with Flask's built-in development server.

## Configuration

`config.yaml` has two sections:

```yaml
app:
  port: 8080
  environment: development
  short_url: "http://localhost:8080/"

database:
  driver: postgres
  host: localhost
  port: 5432
  username: user
  password: password
  name: shortlink
  sslmode: disable
  timezone: UTC
```

`app.short_url` is the prefix put in front of each short code to build the
full short link; requests that need it fail with status 500 when it is empty.

Any key present in the file can be overridden from the environment: upper-case
the key and replace dots with underscores, for example `APP_SHORT_URL` or
`DATABASE_HOST`. `Config.get_string(key)` also looks in the environment first.

From Python, `shortlink.config.load_config(path, environ)` reads a given file
with a given environment mapping and raises `shortlink.config.ConfigError`
when the file is missing or malformed. `shortlink.config.get_config()` loads
`./config.yaml` once and returns the same `Config` on later calls.

## Database

With any driver other than `sqlite`/`sqlite3` the service connects to
PostgreSQL, passing `sslmode` and `timezone` on to the server; a PostgreSQL
driver usable by SQLAlchemy has to be installed separately. With `driver:
sqlite`, `database.name` is the path of the SQLite file.

`shortlink.database.build_url(database)` shows the connection URL that will be
used, `shortlink.database.open_connection(config)` creates and checks an
engine, and `shortlink.database.run_migration(engine)` creates the
`url_mappings` and `url_clicks` tables if they are missing. The `shortlink`
command does not create tables on its own:

```python
from shortlink.config import load_config
from shortlink.database import open_connection, run_migration

run_migration(open_connection(load_config("config.yaml")))
```

## HTTP API

JSON replies carry `status` and `message`; successful ones also carry `data`.

### `POST /api/v1/shorten-url`

Body: `{"long_url": "https://example.com/some/long/path"}`

Creates a random six-character code of letters and digits that expires five
hours later. If the URL already has a mapping that has not expired, the
request is refused with status 400. A body that is not valid JSON, or whose
`long_url` is not a string, is also answered with 400. The URL itself is not
checked.

`data` holds `short_code`, `long_url`, `expires_at` (ISO 8601, UTC with a
trailing `Z`) and `short_url` (the full short link).

### `GET /api/v1/get-long-url-data?short_code=<code>`

Returns the same `data` shape for an existing code. A missing `short_code`
gives 400, an unknown code 404, and an expired code 400.

### `GET /<code>`

Redirects with status 301 to the original URL and records the visitor's
address and user agent. An unknown code answers 404 and an expired one 410,
both as plain text. The paths `/api` and `/favicon.ico` always answer 404
with `{"error": "Not found"}`. A failure to record the click is logged and
does not stop the redirect.

## Embedding

- `shortlink.app.create_app(usecase, base_url)` builds the Flask application
  around any object with `shorten_url`, `get_by_short_code` and
  `resolve_and_log` methods, such as `shortlink.usecases.UrlMappingUsecase`.
- `shortlink.app.build_app(config)` connects to the configured database and
  wires up the repositories, use case and application.
- `shortlink.repositories.UrlMappingRepository` and `UrlClickRepository` store
  mappings and clicks through a SQLAlchemy engine; lookups raise
  `ShortUrlNotFound` or `ShortUrlExpired`.
- `shortlink.errors.ErrorResponse` is the exception carrying an HTTP status
  and message; `bad_request`, `not_found` and `internal_server_error` build
  the common ones.

## What it does not do

There is no authentication, no rate limiting, no way to choose a custom code
or expiry through the API, and no endpoint for reading click statistics;
clicks are only written to the `url_clicks` table.