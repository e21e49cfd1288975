"""
Logging setup. Call :func:`setup_logger_handler` once from the entry point;
modules log through ``logging.getLogger(__name__)``.

Everything goes to stderr. stdout carries nothing but efibootmgr listings so
that they reach the operator exactly as the tool printed them.
"""
import logging
import os
import sys

LOGGER_NAME = 'efi_recreate'
STREAM_FORMAT = '[%(levelname)s] %(message)s'
FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logger_handler(verbose=False, log_file=None):
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter(STREAM_FORMAT))
    stream_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(stream_handler)

    if log_file:
        add_file_handler(logger, log_file)
    return logger


def add_file_handler(logger, log_file):
    """Append the full debug log of this run to ``log_file``."""
    log_dir = os.path.dirname(os.path.abspath(log_file))
    if not os.path.isdir(log_dir):
        os.makedirs(log_dir)
    file_handler = logging.FileHandler(log_file, 'a', encoding='utf-8')
    file_handler.name = 'file_handler'
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    file_handler.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)
    return file_handler
