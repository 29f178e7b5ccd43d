"""
QR Attendance Session Service - Main Application

Entry point for the Flask JSON API that backs the attendance frontend.
Professors open short-lived QR attendance sessions bound to a classroom
location; students scan the code from inside the classroom to be marked
present.
"""

import logging
import os

from qr_attendance import create_app

app = create_app(os.environ.get('FLASK_ENV'))
logger = logging.getLogger(__name__)

if __name__ == '__main__':
    logger.info("Starting QR attendance service")
    app.run(debug=app.config['DEBUG'], host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
