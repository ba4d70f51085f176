STORE_FAILURE = "store operation failed"

class HubError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class ValidationError(HubError):
    status_code = 400

class NotFoundError(HubError):
    status_code = 404

class StoreError(HubError):
    status_code = 500
