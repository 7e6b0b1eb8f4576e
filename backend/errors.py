from typing import Optional


class MintError(Exception):
    """Base error for the mint engine. `public_message` is safe to return to clients."""

    status_code = 500
    public_message = "Internal error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.public_message)
        self.detail = detail or self.public_message


class NotFound(MintError):
    status_code = 404
    public_message = "Unknown mint tag"


class InvalidInput(MintError):
    status_code = 400
    public_message = "Invalid request"


class MintUnavailable(MintError):
    status_code = 403
    public_message = "Minting is not available for this tag"


class DerivationExhausted(MintError):
    status_code = 500
    public_message = "Internal error"


class CheckpointUnavailable(MintError):
    status_code = 503
    public_message = "Network unavailable, please retry"


class ConfigurationError(MintError):
    status_code = 500
    public_message = "Service not configured"
