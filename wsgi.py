"""WSGI entry point for production deployment with gunicorn."""

from resume_forge import create_app

app, socketio = create_app()

# Run gunicorn with a single worker process: generation jobs and
# socket rooms live in this process.
application = app
