"""Tests for the built-in validators."""

from dataclasses import dataclass

import pytest

from formtree import Form, FormControl, NodeRegistry
from formtree.files import AttributeFileInspector
from formtree.rules import ValidatorRegistry
from formtree.rules.util import is_empty_input_value, parse_conditions


# =============================================================================
# Fixtures
# =============================================================================


@dataclass
class Upload:
    name: str
    size: int
    type: str
    width: int = 0
    height: int = 0


@pytest.fixture
def validators():
    return ValidatorRegistry.with_builtins()


@pytest.fixture
def registry(validators):
    registry = NodeRegistry(validators=validators)
    yield registry
    registry.reset_all()


@pytest.fixture
def check(registry, validators):
    """Run a single rule against a fresh control holding ``value``."""

    def run(rule, value, multiple=False):
        control = FormControl(value=value, multiple=multiple, registry=registry)
        (validator,) = validators.resolve(rule)
        return validator(control)

    return run


# =============================================================================
# Presence and format
# =============================================================================


class TestPresence:
    @pytest.mark.parametrize("value", [None, "", []])
    def test_required_fails_on_empty(self, check, value):
        assert check("required", value) == {"required": True}

    @pytest.mark.parametrize("value", ["x", 0, [1], False])
    def test_required_passes(self, check, value):
        assert check("required", value) is None

    def test_empty(self, check):
        assert check("empty", "") is None
        assert check("empty", "x") == {"empty": True}

    def test_is_empty_input_value(self):
        assert is_empty_input_value(None)
        assert is_empty_input_value({})
        assert not is_empty_input_value(0)


class TestFormat:
    def test_email(self, check):
        assert check("email", "a@b.com") is None
        assert check("email", "not-an-email") == {"email": True}
        assert check("email", "") is None

    def test_numeric(self, check):
        assert check("numeric", "0123") is None
        assert check("numeric", "-1") == {"numeric": True}

    def test_integer(self, check):
        assert check("integer", "-12") is None
        assert check("integer", "1.5") == {"integer": True}

    def test_pattern_is_anchored(self, check):
        assert check(r"pattern('[a-z]+')", "abc") is None
        assert check(r"pattern('[a-z]+')", "abc1") == {
            "pattern": {"required_pattern": "^[a-z]+$", "actual_value": "abc1"}
        }

    def test_pattern_keeps_regex_escapes(self, check):
        assert check(r"pattern('\d{3}')", "123") is None
        assert check(r"pattern('\d{3}')", "12a") is not None

    @pytest.mark.parametrize(
        "rule,value,key",
        [
            ("alpha", "abc1", "alpha"),
            ("alphaDash", "ab c", "alphaDash"),
            ("alphaNumeric", "ab-1", "alphaNumeric"),
            ("alphaSpaces", "ab_c", "alphaSpaces"),
        ],
    )
    def test_alpha_family_failures(self, check, rule, value, key):
        assert check(rule, value) == {key: True}

    def test_alpha_locale(self, check):
        assert check("alpha('de')", "Straße") is None
        assert check("alpha('en')", "Straße") == {"alpha": True}
        assert check("alphaSpaces", "hello world") is None
        assert check("alphaDash", "a-b_1") is None


# =============================================================================
# Comparisons
# =============================================================================


class TestEquality:
    def test_equal_is_loose(self, check):
        assert check("equal(3)", "3") is None
        assert check("equal(3)", "4") == {"equal": {"compared": 3, "actual": "4"}}

    def test_not_equal(self, check):
        assert check("notEqual(3)", "3") == {"notEqual": {"compared": 3, "actual": "3"}}
        assert check("notEqual(3)", "4") is None

    def test_is_is_strict(self, check):
        assert check("is(3)", 3) is None
        assert check("is(3)", "3") == {"is": {"compared": 3, "actual": "3"}}

    def test_is_not(self, check):
        assert check("isNot(3)", 3) == {"isNot": {"compared": 3, "actual": 3}}
        assert check("isNot(3)", "3") is None


class TestNumericBounds:
    def test_min(self, check):
        assert check("min(3)", 3) is None
        assert check("min(3)", "1") == {"min": {"min": 3, "actual": "1"}}

    def test_min_rejects_non_numeric(self, check):
        assert check("min(3)", "abc") is not None

    def test_greater(self, check):
        assert check("greater(3)", 3) == {"greater": {"min": 3, "actual": 3}}
        assert check("greater(3)", 4) is None

    def test_max(self, check):
        assert check("max(3)", 3) is None
        assert check("max(3)", 5) == {"max": {"max": 3, "actual": 5}}

    def test_less(self, check):
        assert check("less(3)", 3) == {"less": {"max": 3, "actual": 3}}
        assert check("less(3)", 2.5) is None

    def test_between(self, check):
        assert check("between(1, 10)", 10) is None
        assert check("between(1, 10)", 11) == {"between": {"min": 1, "max": 10, "actual": 11}}

    def test_empty_values_skip_bounds(self, check):
        assert check("min(3)", "") is None
        assert check("between(1, 2)", None) is None


class TestLength:
    def test_length(self, check):
        assert check("length(3)", "abc") is None
        assert check("length(3)", "ab") == {"length": {"required_length": 3, "actual_length": 2}}

    def test_min_length(self, check):
        assert check("minLength(3)", "ab") == {
            "minLength": {"required_length": 3, "actual_length": 2}
        }

    def test_max_length_counts_list_items(self, check):
        assert check("maxLength(2)", ["a", "b", "c"], multiple=True) == {
            "maxLength": {"required_length": 2, "actual_length": 3}
        }

    def test_max_length_measures_numbers_by_digits(self, check):
        assert check("maxLength(2)", 123) is not None

    def test_between_length(self, check):
        assert check("betweenLength(2, 4)", "abc") is None
        assert check("betweenLength(2, 4)", "abcde") == {
            "betweenLength": {"min_length": 2, "max_length": 4, "actual_length": 5}
        }


class TestMembership:
    def test_include_scalar(self, check):
        assert check("include('a')", "a") is None
        assert check("include('a')", "b") == {"include": {"includes": ["a"], "actual_value": "b"}}

    def test_include_list_requires_all(self, check):
        assert check("include('a', 'b')", ["a", "b", "c"], multiple=True) is None
        assert check("include('a', 'b')", ["a"], multiple=True) is not None

    def test_exclude(self, check):
        assert check("exclude('x', 'y')", ["a", "y"], multiple=True) == {
            "exclude": {"excludes": ["x", "y"], "actual_value": ["a", "y"]}
        }
        assert check("exclude('x')", "a") is None


# =============================================================================
# Cross-control equality
# =============================================================================


class TestConfirm:
    def test_confirm_by_path(self, registry, validators):
        form = Form(registry=registry)
        password = FormControl(name="password", value="secret", parent=form)
        confirm = FormControl(name="confirm", value="other", parent=form)
        (validator,) = validators.resolve("confirm('password')")

        assert validator(confirm) == {"confirm": {"compared": "secret", "actual_value": "other"}}
        assert password in confirm.watching

        confirm.value = "secret"
        assert validator(confirm) is None

    def test_confirm_with_control_argument(self, registry, validators):
        password = FormControl(value="a", registry=registry)
        confirm = FormControl(value="b", registry=registry)
        validator = validators.get("confirm")(password)
        assert validator(confirm) is not None

    def test_confirm_missing_path_passes(self, registry, validators):
        form = Form(registry=registry)
        confirm = FormControl(name="confirm", value="x", parent=form)
        (validator,) = validators.resolve("confirm('nope')")
        assert validator(confirm) is None


# =============================================================================
# Files
# =============================================================================


class TestFiles:
    def test_mimes(self, check):
        files = [Upload("a.png", 10, "image/png"), Upload("b.txt", 10, "text/plain")]
        result = check("mimes('image/*')", files, multiple=True)
        assert result["mimes"]["required_mimes"] == ["image/*"]
        assert [f["index"] for f in result["mimes"]["files"]] == [1]

    def test_mimes_escapes_dots(self, check):
        files = [Upload("a", 1, "application/vndXms-excel")]
        assert check("mimes('application/vnd.ms-excel')", files, multiple=True) is not None

    def test_mimes_without_files_passes(self, check):
        assert check("mimes('image/png')", "not a file") is None

    def test_size_default_unit_is_mb(self, check):
        big = Upload("big.bin", 3 * 1024 * 1024, "application/octet-stream")
        result = check("size(2)", big)
        assert result["size"]["max_size"] == "2mb"
        assert result["size"]["files"][0]["file"]["name"] == "big.bin"

    def test_size_with_unit(self, check):
        small = Upload("s.bin", 500, "application/octet-stream")
        assert check("size('1kb')", small) is None
        assert check("size('100b')", small) is not None

    @pytest.mark.asyncio
    async def test_dimensions(self, check):
        images = [Upload("a.png", 1, "image/png", 640, 480), Upload("b.png", 1, "image/png", 50, 50)]
        result = await check("dimensions({width: '>=100', ratio: ['>1']})", images, multiple=True)
        rows = result["dimensions"]["files"]
        assert [row["index"] for row in rows] == [1]
        assert set(rows[0]["file"]) == {"width", "ratio"}

    @pytest.mark.asyncio
    async def test_dimensions_with_probe(self, validators):
        async def probe(file):
            return 10, 10

        registry = NodeRegistry(validators=validators, file_inspector=AttributeFileInspector(probe))
        control = FormControl(value=Upload("a.png", 1, "image/png"), registry=registry)
        (validator,) = validators.resolve("dimensions({height: '10'})")
        assert await validator(control) is None
        registry.reset_all()

    def test_parse_conditions(self):
        conditions = parse_conditions([">=100", "<>1.5", "640"])
        assert [str(c) for c in conditions] == [">=100", "<>1.5", "=640"]
        assert conditions[0].matches(100)
        assert not conditions[1].matches(1.5)
        assert conditions[2].matches(640)
