import os

import stackpilot

# stackpilot version
VERSION = stackpilot.__version__

# environment variable values that are interpreted as true
TRUE_STRINGS = ("1", "true", "True")
FALSE_STRINGS = ("0", "false", "False")

# log levels accepted by SP_LOG
LOG_LEVELS = ("trace", "debug", "info", "warn", "error", "warning")
SP_LOG_TRACE = "trace"
TRACE_LOG_LEVELS = [SP_LOG_TRACE]

# default folder for configuration profiles (<profile>.env files)
DEFAULT_CONFIG_DIR = os.path.expanduser("~/.stackpilot")

# default AWS region, if neither the environment nor the boto session provides one
AWS_REGION_US_EAST_1 = "us-east-1"

# CloudFormation rejects inline template bodies larger than this (in bytes)
CFN_MAX_TEMPLATE_SIZE = 51_200

# seconds between two polls of the stack event stream
DEFAULT_EVENT_POLLING = 3

# number of retries for transient errors while polling stack events
DEFAULT_EVENT_POLLING_MAX_RETRIES = 5

# acknowledgement flags required for templates that touch IAM resources
IAM_CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]

# recognized extensions of template, context and parameter files
TEMPLATE_FILE_EXTENSIONS = (".json", ".yml", ".yaml")

# default file names (without extension) looked up in a stack directory
TEMPLATE_FILE_NAME = "template"
CONTEXT_FILE_NAME = "context"
PARAMETERS_FILE_NAME = "parameters"

# namespace segment of uploaded template keys in S3
TEMPLATE_UPLOAD_NAMESPACE = "stackpilot"
TEMPLATE_UPLOAD_EXTENSION = ".json"

# stack statuses after which no further events are emitted for the current operation
STACK_STATUSES_SUCCESS = (
    "CREATE_COMPLETE",
    "UPDATE_COMPLETE",
    "DELETE_COMPLETE",
    "IMPORT_COMPLETE",
)
STACK_STATUSES_FAILED = (
    "CREATE_FAILED",
    "UPDATE_FAILED",
    "DELETE_FAILED",
    "ROLLBACK_COMPLETE",
    "ROLLBACK_FAILED",
    "UPDATE_ROLLBACK_COMPLETE",
    "UPDATE_ROLLBACK_FAILED",
    "IMPORT_ROLLBACK_COMPLETE",
    "IMPORT_ROLLBACK_FAILED",
)
STACK_STATUSES_TERMINAL = STACK_STATUSES_SUCCESS + STACK_STATUSES_FAILED
