"""Error taxonomy for food resolution."""

RETRY = "retry"
SUPPORT = "support"


class MacroTrackerError(Exception):
    """Base error with a user-safe message and category."""

    category = RETRY
    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class DuplicateName(MacroTrackerError):
    """A food with the same name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Food already exists: {name}")
        self.name = name


class EstimationFailed(MacroTrackerError):
    """The nutrition estimate could not be produced."""

    user_message = "Could not estimate nutrition. Please try again."


class PersistenceFailed(MacroTrackerError):
    """A write to the remote store failed."""

    user_message = "Failed to save. Please try again."


class ValidationRejected(MacroTrackerError):
    """User input was rejected at the input boundary."""

    user_message = "Please enter a valid number."

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Invalid value for {field}: {value!r}")
        self.field = field
        self.value = value


class InvalidTransition(MacroTrackerError):
    """An action is not allowed in the current workflow state."""

    category = SUPPORT
    user_message = "This action is not available right now."

    def __init__(self, state: str, action: str) -> None:
        super().__init__(f"Cannot {action} from state {state}")
        self.state = state
        self.action = action
