class PatchError(Exception):
    pass


class InvalidPointerSyntax(PatchError):
    pass


class OutOfBounds(PatchError, IndexError):
    pass


class UnexpectedType(PatchError, TypeError):
    pass


class NoSuchProperty(PatchError, AttributeError):
    pass


class InvalidArgumentDescriptor(PatchError):
    pass


class InvalidPatchDocument(PatchError):
    pass


class ValidationFailed(InvalidPatchDocument):
    def __init__(self, message: str, violations=None):
        super().__init__(message)
        self.violations = list(violations or [])


class UnknownOperation(PatchError):
    pass


class OperationNotAllowed(PatchError):
    pass


class UnmergeablePatch(PatchError):
    pass
