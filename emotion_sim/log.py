"""Console logging for the command line entry points.

Library modules only create loggers; handlers are installed here, once, by
whichever `main()` runs.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(message)s"


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
