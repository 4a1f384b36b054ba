#!/usr/bin/env python3
"""
Development WSGI entry point for the DX Cluster app.
"""

import os
from app_factory import create_app
from config import DevelopmentConfig

# Set development environment
os.environ['FLASK_ENV'] = 'development'

# Create the application
app = create_app(DevelopmentConfig)

if __name__ == '__main__':
    # The reloader would start a second poller
    app.run(debug=True, host='127.0.0.1', port=DevelopmentConfig.PORT, use_reloader=False)
