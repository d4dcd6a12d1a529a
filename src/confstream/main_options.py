"""Click option helpers for the confstream CLI."""
import click


def _check_conflicts(name: str, conflicts_with: list[str], opts: dict) -> None:
    """Raise UsageError if a conflicting option was also given.

    Args:
        name: Name of the current option.
        conflicts_with: Names of options that cannot be combined with it.
        opts: Dictionary of parsed options.

    Raises:
        click.UsageError: If a conflicting option is present.
    """
    for other in conflicts_with:
        if opts.get(other):
            flag = other.replace("_", "-")
            raise click.UsageError(f"Options --{name} and --{flag} are mutually exclusive")


class ConflictingOption(click.Option):
    """Click flag that cannot be combined with the listed options."""

    def __init__(self, *args, **kwargs):
        """Initialize with a conflicts_with list of option names."""
        self.conflicts_with = kwargs.pop("conflicts_with", [])
        super().__init__(*args, **kwargs)

    def handle_parse_result(self, ctx, opts, args):
        """Reject the option when it is set alongside a conflicting one."""
        if opts.get(self.name):
            _check_conflicts(self.name, self.conflicts_with, opts)
        return super().handle_parse_result(ctx, opts, args)


class HeaderParamType(click.ParamType):
    """A NAME:VALUE request header, converted to a (name, value) pair.

    Header values may contain spaces, so several headers given through an
    environment variable are separated by newlines instead.
    """

    name = "NAME:VALUE"
    envvar_list_splitter = "\n"

    def split_envvar_value(self, rv):
        """Split an environment value into one header per non-blank line."""
        return [line for line in super().split_envvar_value(rv) if line.strip()]

    def convert(self, value, param, ctx):
        """Parse NAME:VALUE, failing with a usage error when malformed."""
        if isinstance(value, tuple):
            return value
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            self.fail(f"expected NAME:VALUE, got {value!r}", param, ctx)
        return name.strip(), content.strip()
