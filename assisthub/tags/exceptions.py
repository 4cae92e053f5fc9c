"""Errors raised by tag registry and association operations"""


class TagError(Exception):
    """Base class for tag failures surfaced to callers"""


class DuplicateTag(TagError):
    def __init__(self, name, category):
        self.name = name
        self.category = category
        super().__init__(f'Tag "{name}" already exists in category "{category}".')


class TagInUse(TagError):
    def __init__(self, name, usage_count):
        self.name = name
        self.usage_count = usage_count
        super().__init__(f'Tag "{name}" cannot be deleted: it is used by {usage_count} entities.')


class TagInUseCategoryLocked(TagError):
    def __init__(self, name, usage_count):
        self.name = name
        self.usage_count = usage_count
        super().__init__(f'Cannot change the category of tag "{name}" while it is used by {usage_count} entities.')


class EntityNotFound(TagError):
    def __init__(self, kind, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f'{kind} with ID {identifier} not found.')


class TransactionFailed(TagError):
    """The association batch was rejected and nothing was applied"""


class InvalidTagAssociation(TagError):
    """Malformed association request (overlapping IDs, mismatched tag)"""


class UnknownTag(TagError):
    def __init__(self, names, category):
        self.names = sorted(names)
        self.category = category
        super().__init__(f'Unknown tags for category "{category}": {", ".join(self.names)}.')
