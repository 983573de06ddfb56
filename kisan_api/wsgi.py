"""WSGI entrypoint for hosted deployments; point the WSGI server at ``kisan_api.wsgi:app``."""

from kisan_api.jobs.server import app, bootstrap

bootstrap()
