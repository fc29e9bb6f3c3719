"""Development entry point: serves the API and the /artifacts socket namespace."""

import logging
import os

from resume_forge import create_app

app, socketio = create_app()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    development = os.environ.get('FLASK_ENV') != 'production'

    logging.info(f"Starting Resume Forge API on port {port}")
    try:
        socketio.run(
            app,
            host='0.0.0.0',
            port=port,
            debug=development,
            use_reloader=False,
            allow_unsafe_werkzeug=development
        )
    finally:
        # Let in-flight generations settle their credits before exit
        app.extensions['job_runner'].shutdown(wait=True)
