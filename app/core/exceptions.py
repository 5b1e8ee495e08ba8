class ValidationFailed(Exception):
    """Malformed input to a create operation."""


class InvalidParentFolder(ValidationFailed):
    """Target folder is missing or belongs to another owner."""
