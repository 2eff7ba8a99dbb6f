from typing import Optional


class UpstreamError(RuntimeError):
    """An upstream model runtime refused, failed or could not be called."""

    def __init__(self, message: str, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
