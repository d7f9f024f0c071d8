"""Launch the GeminiTalk REST server with file and console logging."""

import logging
from .config import Config
from . import create_app

def setup_logging():
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(Config.LOG_FILE),
            logging.StreamHandler()
        ]
    )
    if Config.SECRET_KEY == "dev-secret-change-in-prod":
        logging.getLogger(__name__).warning("Using default SECRET_KEY. Set SECRET_KEY environment variable in production!")

def main():
    setup_logging()
    app = create_app()
    app.run(host="0.0.0.0", port=Config.PORT, debug=Config.DEBUG)

if __name__ == "__main__":
    main()
