"""
API errors rendered as {"ok": false, "error": ...}
"""


class ApiError(Exception):
    """An error the client should see, with its HTTP status"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
