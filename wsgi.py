"""
WSGI entry point for the Strip Analysis Service.

This file is used by Gunicorn and other WSGI servers to run the application
in production/staging environments.

Usage:
    gunicorn -w 4 -b 0.0.0.0:5000 --timeout 30 wsgi:app
"""

import os

from app import app

# Export app for WSGI servers
application = app

if __name__ == '__main__':
    # Development only; use Gunicorn in production
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    app.run(host='0.0.0.0', port=port, debug=debug)
