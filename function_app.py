import os
import logging
import azure.functions as func

from src.function_blueprints.http_entities import bp as entities_bp

app = func.FunctionApp()
app.register_functions(entities_bp)


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.cosmos").setLevel(level)
    engine_lvl = (os.getenv("ENGINE_LOG_LEVEL") or "INFO").upper()
    logging.getLogger("campaignengine").setLevel(getattr(logging, engine_lvl, logging.INFO))


_configure_logging()
