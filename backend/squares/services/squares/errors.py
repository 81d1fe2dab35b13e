class PickError(Exception):
    """A guest action was refused; ``code`` is the stable client-facing reason."""

    def __init__(self, code: str, message: str = None):
        super().__init__(message or code)
        self.code = code
