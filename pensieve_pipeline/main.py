import logging
import shutil

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from pensieve_pipeline.api import create_app
from pensieve_pipeline.config import get_config

config = get_config()
if config.debug:
    logging.getLogger().setLevel(logging.DEBUG)


def main():
    logger.info(f"Starting post-processing service on {config.host}:{config.port}")
    logger.info(f"Config: {config.as_dict()}")
    for tool in ("ffmpeg", config.whisper_bin):
        if shutil.which(tool) is None:
            logger.warning(f"{tool} not found on PATH")

    uvicorn.run(create_app(), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
