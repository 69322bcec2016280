# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import logging.handlers
import time
from pathlib import Path

_FORMAT = '%(asctime)s %(levelname)7s %(name)s %(message).5000s'


def init_logging(verbose: bool = False, quiet: bool = False):
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=_FORMAT)


def add_file_log(logger: logging.Logger, log_file: Path, level=logging.INFO):
    """Append to a file that outlives the process and is rotated externally.

    Lines have a UTC time stamp and the message only: the file is read
    by people and counted by scripts.
    """
    log_file.parent.mkdir(exist_ok=True, parents=True)
    file_handler = logging.handlers.WatchedFileHandler(log_file)
    formatter = logging.Formatter('[%(asctime)s UTC] %(message)s', '%Y-%m-%d %H:%M:%S')
    formatter.converter = time.gmtime
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    logger.addHandler(file_handler)
    return file_handler
