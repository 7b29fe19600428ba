"""Rule CLI commands: list, check and lint rule strings."""

from pathlib import Path

import click
import yaml

from formtree.errors import RuleResolutionError
from formtree.rules.registry import default_registry


@click.group()
def rules():
    """Rule commands."""
    pass


@rules.command("list")
def list_validators():
    """List registered validator names."""
    for name in default_registry().list_registered():
        click.echo(name)


@rules.command()
@click.argument("rule_strings", nargs=-1, required=True)
def check(rule_strings: tuple[str, ...]):
    """Resolve each RULE and report whether it is valid.

    Example:

        formtree rules check "required|minLength(3)" "between(1, 10)"
    """
    registry = default_registry()
    failed = 0

    for rule in rule_strings:
        try:
            validators = registry.resolve(rule)
        except RuleResolutionError as e:
            failed += 1
            click.echo(click.style(f"✗ {rule}: {e}", fg="red"))
            continue
        click.echo(click.style(f"✓ {rule} ({len(validators)} validator(s))", fg="green"))

    if failed:
        click.echo(f"{failed} of {len(rule_strings)} rule(s) failed.", err=True)
        raise SystemExit(1)


@rules.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def lint(path: Path):
    """Resolve every rule in a YAML file mapping field names to rules.

    Each value is a rule string or a list of rule strings:

    \b
        email: required|email
        age:
          - integer
          - between(18, 120)
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        click.echo(f"Error: cannot parse {path}: {e}", err=True)
        raise SystemExit(1)

    if not isinstance(data, dict):
        click.echo(f"Error: {path} must contain a mapping of field names to rules.", err=True)
        raise SystemExit(1)

    registry = default_registry()
    failed = 0

    for field, field_rules in data.items():
        rule_list = field_rules if isinstance(field_rules, list) else [field_rules]
        for rule in rule_list:
            if not isinstance(rule, str):
                failed += 1
                click.echo(click.style(f"✗ {field}: {rule!r} is not a rule string", fg="red"))
                continue
            try:
                registry.resolve(rule)
            except RuleResolutionError as e:
                failed += 1
                click.echo(click.style(f"✗ {field}: {e}", fg="red"))

    if failed:
        click.echo(f"{failed} error(s) in {path}.", err=True)
        raise SystemExit(1)

    click.echo(click.style(f"✓ {len(data)} field(s) OK", fg="green"))
