"""
Run the server.

Usage:
  python -m orderdesk
"""
import uvicorn

from .config import load_settings
from .log import setup_logging
from .main import create_app


def main():
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_format)
    app = create_app(settings)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
