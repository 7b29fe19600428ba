"""Exception taxonomy for formtree.

Configuration mistakes (bad rule strings, mismatched choices) fail loudly at
setup time. Validator failures never surface here: they become error records
on the control that ran them.
"""


class FormTreeError(Exception):
    """Base class for all formtree errors."""


class RuleResolutionError(FormTreeError):
    """A rule description could not be turned into validator functions.

    Raised for malformed rule segments and for names that are not registered.
    """

    def __init__(self, message: str, rule: str | None = None, position: int | None = None):
        self.rule = rule
        self.position = position
        super().__init__(message)


class ChoiceConfigError(FormTreeError):
    """A choice cannot be attached to the control it resolved to."""


class FileInspectionError(FormTreeError):
    """The file inspector could not describe a value."""
