"""Core types shared across the control tree and the validator layer."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, Union

if TYPE_CHECKING:
    from formtree.control import Control


class ValidateState(Enum):
    """Outcome of the most recent validation run of a control."""

    VALID = "VALID"
    INVALID = "INVALID"
    PENDING = "PENDING"  # an async run is in flight


class NodeKind(Enum):
    """Closed set of node variants."""

    FORM_CONTROL = "FormControl"
    CHOICE_CONTROL = "FormChoiceControl"
    FORM_ARRAY = "FormArray"
    FORM_GROUP = "FormGroup"
    FORM = "Form"
    CHOICE = "FormChoice"


VALIDATE_TIMINGS = ("input", "change", "blur")
PASS_THROUGH_EVENTS = ("input", "change", "focus", "blur")

# {error-kind: detail}, e.g. {"required": True} or {"min": {"min": 3, "actual": 1}}
ErrorRecord = dict[str, Any]
ValidationResult = ErrorRecord | None

ValidatorFn = Callable[["Control"], Union[ValidationResult, Awaitable[ValidationResult]]]
ValidatorFactory = Callable[..., ValidatorFn]
ValidateConditionChecker = Callable[["Control"], bool]

# A rule may be a validator function, a rule string, or a sequence of either.
RuleSpec = Union[str, ValidatorFn, list[Union[str, ValidatorFn]], tuple[Union[str, ValidatorFn], ...]]
ValidateCondition = Union[str, ValidateConditionChecker]


@dataclass(frozen=True)
class FileInfo:
    """Basic description of a selected file."""

    name: str
    size: int
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "size": self.size, "type": self.type}


@dataclass(frozen=True)
class ImageFileInfo(FileInfo):
    """File description extended with pixel dimensions."""

    width: int = 0
    height: int = 0
    ratio: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result.update(width=self.width, height=self.height, ratio=self.ratio)
        return result


class FileInspector(Protocol):
    """Capability the engine calls to learn about file values.

    The engine never decodes files itself; file-oriented validators
    (mimes, size, dimensions) go through this interface.
    """

    def is_file(self, value: Any) -> bool:
        """Return True if value should be treated as a selected file."""
        ...

    def describe_file(self, file: Any) -> FileInfo:
        """Return name, size and MIME type of the file."""
        ...

    async def describe_image_file(self, file: Any) -> ImageFileInfo:
        """Return the file description plus width, height and ratio."""
        ...
