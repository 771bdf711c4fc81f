import logging

import uvicorn

from .app import create_app
from .config import configure_logging, load_settings

logger = logging.getLogger(__name__)


def main():
    # missing provider configuration is fatal here, before anything is served
    settings = load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Recipes API listening on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
