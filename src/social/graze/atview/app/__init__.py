"""
atview Application Layer

Web application layer built on aiohttp, serving the record viewer pages and
a JSON API.

Key Components:
- cli.py: entry point and logging configuration
- server.py: web server configuration and middleware setup
- config.py: configuration management using Pydantic settings
- state.py: view state store (theme, notice, PDS, record validity)
- handlers/: request handlers for pages, API and internal probes
- metrics.py: metrics client abstraction
- health.py, tasks.py: readiness gauge and its background task

Middleware:
- Statsd middleware for request metrics
- Sentry middleware for error reporting

Endpoints:
- Viewer pages (/, /{pds}, /{pds}/{repo}, /{pds}/{repo}/{collection}/{rkey})
- JSON API (/api/normalize, /api/resolve, /api/record)
- Internal probes (/internal/alive, /internal/ready)
"""
