"""Engine configuration from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"
PRESETS_DIR = ROOT / "presets"


class EngineConfig(BaseModel):
    data_dir: Path = DEFAULT_DATA_DIR
    branch_probability: float = Field(default=0.2, ge=0.0, le=1.0)
    start_node_id: int | str = 1
    random_seed: int | None = None
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 13013


def load_config(env_file: Path | None = None) -> EngineConfig:
    """Read DATA_DIR, BRANCH_PROBABILITY, START_NODE_ID, RANDOM_SEED, LOG_LEVEL,
    HOST and PORT."""
    load_dotenv(env_file or ROOT / ".env")

    fields: dict = {}
    if os.getenv("DATA_DIR"):
        fields["data_dir"] = Path(os.environ["DATA_DIR"])
    if os.getenv("BRANCH_PROBABILITY"):
        fields["branch_probability"] = float(os.environ["BRANCH_PROBABILITY"])
    if os.getenv("START_NODE_ID"):
        raw = os.environ["START_NODE_ID"]
        fields["start_node_id"] = int(raw) if raw.isdigit() else raw
    if os.getenv("RANDOM_SEED"):
        fields["random_seed"] = int(os.environ["RANDOM_SEED"])
    if os.getenv("LOG_LEVEL"):
        fields["log_level"] = os.environ["LOG_LEVEL"].upper()
    if os.getenv("HOST"):
        fields["host"] = os.environ["HOST"]
    if os.getenv("PORT"):
        fields["port"] = int(os.environ["PORT"])
    return EngineConfig(**fields)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
