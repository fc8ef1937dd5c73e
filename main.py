"""WSGI entrypoint for the Smart Fridge recipe assistant.

The Flask development server is not started from this module; deployments run
it under a WSGI server such as Gunicorn, and local development can use
``flask --app main run`` which imports the ``app`` object defined below.
"""

from smartfridge import create_app

app = create_app()


__all__ = ["app"]
