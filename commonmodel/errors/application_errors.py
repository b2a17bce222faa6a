class ApplicationError(Exception):
    pass


class ConnectionGroupNotFound(ApplicationError):
    def __init__(self, group: str):
        super().__init__(f"Unknown connection group: {group!r}")
        self.group = group


class InvalidSchemaDefinition(ApplicationError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self):
        if self.field:
            return f"{self.message} (field: {self.field})"
        return self.message
