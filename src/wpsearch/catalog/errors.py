class UpstreamError(Exception):
    """Raised by the plugin directory client."""


class UpstreamUnavailable(UpstreamError):
    """Network or protocol failure while talking to the directory."""


class UpstreamMalformed(UpstreamError):
    """The directory answered without the expected plugin collection."""


class BrowseError(Exception):
    code = "browse_error"
    status_code = 500
    default_message = "Failed to browse plugins."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidAction(BrowseError):
    code = "invalid_action"
    status_code = 400
    default_message = "Invalid action"


class ServiceUnavailable(BrowseError):
    code = "api_error"
    status_code = 503
    default_message = (
        "Unable to connect to WordPress.org plugin directory. "
        "Please try again later."
    )


class BadGateway(BrowseError):
    code = "invalid_response"
    status_code = 502
    default_message = "Invalid response from plugin directory. Please try again."
