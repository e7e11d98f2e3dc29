#!/usr/bin/env python3
"""
Mr Modpack - Modrinth collection bundler
- Lists the game versions a Modrinth collection supports
- Builds a zip of every compatible mod (plus required dependencies)
- Deletes bundles again after a short retention window
"""

import logging
import os

from mrmodpack import create_app
from mrmodpack.utils.config import get_config

log = logging.getLogger(__name__)


def setup_logging(cfg):
    """Log to console and, if configured, to a file."""
    handlers = [logging.StreamHandler()]
    if cfg.get("log_file"):
        handlers.append(logging.FileHandler(os.path.expanduser(cfg["log_file"])))
    logging.basicConfig(
        level=getattr(logging, str(cfg.get("log_level", "INFO")).upper(), logging.INFO),
        format='%(asctime)s | [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )
    # apscheduler logs every job run at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def main():
    cfg = get_config()
    setup_logging(cfg)

    app = create_app()
    assembler = app.extensions["mrmodpack"]["assembler"]

    log.info(f"[BOOT] Listening on http://{cfg['host']}:{cfg['port']}")
    try:
        app.run(host=cfg["host"], port=cfg["port"], threaded=True)
    finally:
        assembler.stop_scheduler()
        app.extensions["mrmodpack"]["catalog"].client.close()


if __name__ == "__main__":
    main()
