# File: postseq/utils.py
# Location: postseq/postseq/utils.py

"""
Utility functions module.

Provides helpers for opening (optionally gzipped) files and describing the
execution environment.
"""

import gzip
import os
import platform
import socket
from typing import Dict


def smart_open(filename: str, mode: str = "r", encoding: str = "utf-8"):
    """
    Open a file with automatic gzip support based on file extension.

    Parameters
    ----------
    filename : str
        Path to the file
    mode : str
        File opening mode ('r', 'w', 'rt', 'wt', etc.)
    encoding : str
        Text encoding (for text modes)

    Returns
    -------
    file object
        Opened file handle
    """
    filename = str(filename)
    if filename.endswith(".gz"):
        if "t" not in mode and "b" not in mode:
            mode = mode + "t"
        return gzip.open(filename, mode, encoding=encoding)
    else:
        if "b" not in mode:
            return open(filename, mode, encoding=encoding)
        else:
            return open(filename, mode)


def get_hostname() -> str:
    """Return the name of the host the pipeline runs on."""
    return socket.gethostname()


def describe_environment() -> Dict[str, str]:
    """Collect host, interpreter and working directory for the run log."""
    return {
        "host": get_hostname(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "working_dir": os.getcwd(),
        "user": os.environ.get("USER", ""),
    }
