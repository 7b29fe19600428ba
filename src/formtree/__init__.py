"""formtree: a reactive form-validation engine.

Controls form a tree: FormControl leaves, ChoiceControl options groups and
FormArray/FormGroup/Form composites. Each control tracks its value,
pristine/touched state and errors, and validates itself asynchronously with
debounce and race-safe cancellation.

Usage:
    from formtree import Form, FormControl

    form = Form()
    password = FormControl(name="password", rules="required|minLength(8)", parent=form)
    confirm = FormControl(name="confirm", rules="confirm('password')", parent=form)

    errors = await form.validate_all()
"""

from formtree.choice import Choice, ChoiceControl
from formtree.config import EngineConfig
from formtree.control import Control, FormControl, ValueControl
from formtree.errors import ChoiceConfigError, FileInspectionError, FormTreeError, RuleResolutionError
from formtree.files import AttributeFileInspector, PathFileInspector
from formtree.group import CompositeControl, Form, FormArray, FormGroup
from formtree.nodes import FormNode
from formtree.registry import NodeRegistry, WatchGraph
from formtree.rules import ValidatorRegistry, register_validator, resolve
from formtree.types import (
    ErrorRecord,
    FileInfo,
    FileInspector,
    ImageFileInfo,
    NodeKind,
    ValidateState,
    ValidationResult,
    ValidatorFn,
)

__all__ = [
    # Nodes
    "FormNode",
    "Control",
    "ValueControl",
    "FormControl",
    "ChoiceControl",
    "Choice",
    "CompositeControl",
    "FormArray",
    "FormGroup",
    "Form",
    # Registries
    "NodeRegistry",
    "WatchGraph",
    "ValidatorRegistry",
    "register_validator",
    "resolve",
    # Config and files
    "EngineConfig",
    "AttributeFileInspector",
    "PathFileInspector",
    # Types
    "ErrorRecord",
    "FileInfo",
    "FileInspector",
    "ImageFileInfo",
    "NodeKind",
    "ValidateState",
    "ValidationResult",
    "ValidatorFn",
    # Errors
    "FormTreeError",
    "RuleResolutionError",
    "ChoiceConfigError",
    "FileInspectionError",
]
