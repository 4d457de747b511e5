import uvicorn
from constants import HOST, PORT, LOG_LEVEL, LOG_FILE
from logging_config import setup_logging, get_logger

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

if __name__ == "__main__":
    logger.info(f"Starting chat directory server on {HOST}:{PORT}")
    uvicorn.run("app:create_app", host=HOST, port=PORT, factory=True, log_config=None)
