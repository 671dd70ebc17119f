class StackpilotError(Exception):
    """Base class for all errors raised by stackpilot itself"""

    message: str

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TemplateNotFound(StackpilotError):
    """Raised if no template file can be resolved from the given path"""

    def __init__(self, path: str):
        super().__init__(f"No template found at {path}")
        self.path = path


class MissingDestination(StackpilotError):
    """Raised if a template has to be uploaded to S3, but no bucket is configured"""

    def __init__(self, message: str = "Bucket for template upload to S3 is missing"):
        super().__init__(message)
