import glob
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

LOG = logging.getLogger(__name__)


def load_file(file_path, default=None, mode=None):
    if not os.path.isfile(file_path):
        return default
    if not mode:
        mode = "r"
    with open(file_path, mode) as f:
        result = f.read()
    return result


def find_file_by_name(folder: str, name: str, extensions: Iterable[str]) -> Optional[str]:
    """
    Returns the first file ``<name>.*`` in the given folder (in directory scan order) whose extension is one of
    the given extensions, or None if there is no such file.

    :param folder: the folder to search in
    :param name: the file name without extension
    :param extensions: the accepted extensions, including the leading dot (e.g., ``.json``)
    :return: the path of the first matching file
    """
    extensions = tuple(extensions)
    for candidate in glob.glob(os.path.join(glob.escape(folder), f"{name}.*")):
        if Path(candidate).suffix in extensions and os.path.isfile(candidate):
            return candidate
    return None
