from __future__ import annotations

import logging

logger = logging.getLogger("audit-log")


def init() -> None:
    logger.info("audit-log tool ready")


# Plain mappings work as well as Extension instances
extension = {"name": "audit-log", "kind": "tool", "init": init}
