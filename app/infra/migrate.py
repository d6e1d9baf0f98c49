from __future__ import annotations

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "alembic.ini"


def run_upgrade_head(config_path: str | None = None) -> None:
    config = Config(config_path or str(DEFAULT_CONFIG))
    command.upgrade(config, "head")


if __name__ == "__main__":
    run_upgrade_head(sys.argv[1] if len(sys.argv) > 1 else None)
