class TimelineNotFoundError(LookupError):
    """Raised when a template or item id does not exist for the school"""


class ConfirmationRequired(Exception):
    """Raised when a destructive editor action is attempted without confirmation"""

    def __init__(self, action: str, message: str):
        super().__init__(message)
        self.action = action
        self.message = message
