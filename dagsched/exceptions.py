"""
Exceptions raised by the scheduling core.
"""


class SchedulerError(Exception):
    """Base exception for dagsched"""
    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class GraphError(SchedulerError):
    """Input task graph is cyclic or malformed"""
    def __init__(self, message: str):
        super().__init__(message, "GRAPH_ERROR")


class PlacementError(SchedulerError):
    """Task placed out of time order or removed out of LIFO order"""
    def __init__(self, message: str):
        super().__init__(message, "PLACEMENT_ERROR")


class NotFoundError(SchedulerError):
    """Task not present where it was expected"""
    def __init__(self, resource_type: str, resource_id: str = None):
        message = f"{resource_type} not found"
        if resource_id:
            message += f": {resource_id}"
        super().__init__(message, "NOT_FOUND")


class StateError(SchedulerError):
    """Query that needs at least one placed task was made on an empty schedule"""
    def __init__(self, message: str):
        super().__init__(message, "STATE_ERROR")


class SearchLimitError(SchedulerError):
    """Search explored more branches than the configured limit"""
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Search exceeded the limit of {limit} branches", "SEARCH_LIMIT")


class VerificationError(SchedulerError):
    """Independent CP-SAT model disagrees with the search result"""
    def __init__(self, message: str):
        super().__init__(message, "VERIFICATION_ERROR")
