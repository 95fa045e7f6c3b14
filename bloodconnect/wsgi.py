"""
WSGI entry point.

    flask --app bloodconnect.wsgi run
"""

import os

from .app import create_app

app = create_app()

if __name__ == '__main__':
    # Development server
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 3000)),
        debug=app.config['DEBUG']
    )
