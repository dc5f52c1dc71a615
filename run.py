#!/usr/bin/env python3
"""
Run script for MoodReel Backend
"""
import uvicorn

from moodreel.config.settings import settings
from moodreel.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
