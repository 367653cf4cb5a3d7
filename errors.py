"""
Exceptions raised by the build snapshot service
"""


class FieldAlreadySetError(ValueError):
    """Raised when a set-once snapshot field is assigned a second value"""

    def __init__(self, field_name: str):
        super().__init__(f"Snapshot field '{field_name}' is already set")
        self.field_name = field_name


class EnvironmentUnavailableError(RuntimeError):
    """Raised by a host when the environment of a build cannot be resolved"""
