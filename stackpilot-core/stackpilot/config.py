import dataclasses
import logging
import os
from typing import List, Mapping, Optional, Union

from stackpilot.constants import (
    AWS_REGION_US_EAST_1,
    CFN_MAX_TEMPLATE_SIZE,
    DEFAULT_CONFIG_DIR,
    DEFAULT_EVENT_POLLING,
    DEFAULT_EVENT_POLLING_MAX_RETRIES,
    FALSE_STRINGS,
    LOG_LEVELS,
    TRACE_LOG_LEVELS,
    TRUE_STRINGS,
)

LOG = logging.getLogger(__name__)


def eval_log_type(env_var_name: str) -> Union[str, bool]:
    """Get the log type from environment variable"""
    sp_log = os.environ.get(env_var_name, "").lower().strip()
    return sp_log if sp_log in LOG_LEVELS else False


def is_env_true(env_var_name: str) -> bool:
    """Whether the given environment variable has a truthy value."""
    return os.environ.get(env_var_name, "").lower().strip() in TRUE_STRINGS


def is_env_not_false(env_var_name: str) -> bool:
    """Whether the given environment variable is empty or has a truthy value."""
    return os.environ.get(env_var_name, "").lower().strip() not in FALSE_STRINGS


def load_environment(profiles: str = None, env=os.environ) -> List[str]:
    """Loads the environment variables from ~/.stackpilot/{profile}.env, for each profile listed in the profiles.
    :param env: environment to load profile to. Defaults to `os.environ`
    :param profiles: a comma separated list of profiles to load (defaults to "default")
    :returns str: the list of the actually loaded profiles (might be the fallback)
    """
    if not profiles:
        profiles = "default"

    profiles = profiles.split(",")
    environment = {}
    import dotenv

    for profile in profiles:
        profile = profile.strip()
        path = os.path.join(CONFIG_DIR, f"{profile}.env")
        if not os.path.exists(path):
            continue
        environment.update(dotenv.dotenv_values(path))

    for k, v in environment.items():
        # we do not want to override the environment
        if k not in env and v is not None:
            env[k] = v

    return profiles


def is_trace_logging_enabled():
    if SP_LOG:
        log_level = str(SP_LOG).upper()
        return log_level.lower() in TRACE_LOG_LEVELS
    return False


def _int_from_env(env_var_name: str, default: int) -> int:
    value = os.environ.get(env_var_name, "").strip()
    return int(value) if value else default


# the configuration profile to load
CONFIG_PROFILE = os.environ.get("CONFIG_PROFILE", "").strip()

# host configuration directory
CONFIG_DIR = os.environ.get("CONFIG_DIR", DEFAULT_CONFIG_DIR)

# keep this on top to populate environment
LOADED_PROFILES = load_environment(CONFIG_PROFILE)

# default encoding used to convert strings to byte arrays (mainly for Python 3 compatibility)
DEFAULT_ENCODING = "utf-8"

# log level of stackpilot itself (trace, debug, info, warn, error)
SP_LOG = eval_log_type("SP_LOG")
DEBUG = is_env_true("DEBUG") or SP_LOG in TRACE_LOG_LEVELS

# region used for all AWS clients
AWS_REGION = (
    os.environ.get("AWS_REGION", "").strip()
    or os.environ.get("AWS_DEFAULT_REGION", "").strip()
    or AWS_REGION_US_EAST_1
)

# region of the bucket that receives oversized templates (follows the AWS region if not set)
S3_REGION = os.environ.get("S3_REGION", "").strip() or None

# bucket (optionally followed by a key prefix) that receives oversized templates
TEMPLATE_BUCKET = os.environ.get("TEMPLATE_BUCKET", "").strip() or None

# maximum size (in bytes) of a template body that is submitted inline
MAX_TEMPLATE_BODY_SIZE = _int_from_env("MAX_TEMPLATE_BODY_SIZE", CFN_MAX_TEMPLATE_SIZE)

# seconds to wait between two polls of the stack event stream
EVENT_POLLING = _int_from_env("EVENT_POLLING", DEFAULT_EVENT_POLLING)

# retries for transient errors while polling the event stream
EVENT_POLLING_MAX_RETRIES = _int_from_env(
    "EVENT_POLLING_MAX_RETRIES", DEFAULT_EVENT_POLLING_MAX_RETRIES
)

# custom endpoint for all AWS services (e.g., a LocalStack instance)
AWS_ENDPOINT_URL = os.environ.get("AWS_ENDPOINT_URL", "").strip() or None

# whether to disable the retries performed by botocore itself (set to 0 to keep botocore's retry behavior)
DISABLE_BOTO_RETRIES = is_env_not_false("DISABLE_BOTO_RETRIES")


@dataclasses.dataclass
class DeployConfig:
    """
    Explicit configuration of a single stackpilot invocation. Components receive an instance of this
    class in their constructor instead of reading the module level values above, which only serve as
    defaults (see ``from_environment``).
    """

    region: str = AWS_REGION_US_EAST_1
    s3_region: Optional[str] = None
    template_bucket: Optional[str] = None
    max_template_body_size: int = CFN_MAX_TEMPLATE_SIZE
    event_polling: int = DEFAULT_EVENT_POLLING
    event_polling_max_retries: int = DEFAULT_EVENT_POLLING_MAX_RETRIES
    endpoint_url: Optional[str] = None
    disable_boto_retries: bool = True

    def __post_init__(self):
        if not self.s3_region:
            self.s3_region = self.region

    @classmethod
    def from_environment(cls, **overrides) -> "DeployConfig":
        """
        Creates a config from the values loaded from the environment (and the config profiles).
        Overrides with a value of ``None`` are ignored, which allows passing CLI options directly.
        """
        values = {
            "region": AWS_REGION,
            "s3_region": S3_REGION,
            "template_bucket": TEMPLATE_BUCKET,
            "max_template_body_size": MAX_TEMPLATE_BODY_SIZE,
            "event_polling": EVENT_POLLING,
            "event_polling_max_retries": EVENT_POLLING_MAX_RETRIES,
            "endpoint_url": AWS_ENDPOINT_URL,
            "disable_boto_retries": DISABLE_BOTO_RETRIES,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def as_dict(self) -> Mapping[str, object]:
        return dataclasses.asdict(self)
