import os
import sys
from typing import Optional

# important: this needs to be free of stackpilot imports


def set_profile_from_sys_argv():
    """
    Reads the --profile flag from sys.argv and then sets the 'CONFIG_PROFILE' os variable accordingly. This is later
    picked up by ``stackpilot.config``. The flag itself stays in sys.argv, the CLI accepts (and ignores) it.
    """
    profile = parse_profile_argument(sys.argv)
    if profile:
        os.environ["CONFIG_PROFILE"] = profile.strip()


def parse_profile_argument(args) -> Optional[str]:
    """
    Lightweight arg parsing to find ``--profile <config>``, or ``--profile=<config>`` (or the short form ``-p``)
    and return the value of ``<config>`` from the given arguments.

    :param args: list of CLI arguments
    :returns: the value of ``--profile``.
    """
    for i, current_arg in enumerate(args):
        for prefix in ("--profile=", "-p="):
            if current_arg.startswith(prefix):
                return current_arg[len(prefix) :]
        if current_arg in ["--profile", "-p"]:
            # otherwise use the next arg in the args list as value
            try:
                return args[i + 1]
            except IndexError:
                return None

    return None
