"""
WSGI / Flask-Migrate entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db init
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
    flask --app wsgi issue-token 3
"""

from reportflow import create_app

app = create_app()
