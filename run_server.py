import logging

import uvicorn

from inference.engine import PipelineConfig

if __name__ == "__main__":
    config = PipelineConfig.from_env()

    logging.basicConfig(
        level=getattr(logging, config.server.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("Starting Personality Inference API Server...")
    print(f"Docs available at: http://{config.server.host}:{config.server.port}/docs")

    uvicorn.run(
        "inference.api.server:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
    )
