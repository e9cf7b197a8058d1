"""
Main CLI entry point for propserver.

Provides the command-line interface using Click:

- serve:        run the HTTP server
- render:       print the merged YAML for a service and env
- config:       show effective settings and config file locations
"""

import json as _json
import logging as _logging
import os as _os
import sys as _sys
import typing as _typing

import click as _click
import pydantic as _pydantic
import yaml as _yaml

import propserver
import propserver.config as config
import propserver.config.sources as config_sources
import propserver.render as render
import propserver.repository as repository
import propserver.resolver as resolver
import propserver.tree as tree

# Custom Click context settings for better help formatting
CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}


def _configure_logging(settings: config.Settings, verbose: bool) -> None:
    level = "DEBUG" if verbose else settings.logging.level.upper()
    _logging.basicConfig(
        level=level,
        format=settings.logging.format,
        stream=_sys.stderr,
        force=True,
    )


def _should_use_color(cli_flag: bool | None) -> tuple[bool, bool]:
    """Determine whether to use color output.

    Priority:
    1. CLI flag (--color / --no-color) if specified
    2. PROPSERVER_COLOR env var (1=on, 0=off)
    3. NO_COLOR env var (if set, disable color) - standard convention
    4. Auto-detect: color if stdout is a TTY

    Returns:
        Tuple of (color_enabled, force_color).
        force_color is True when color was explicitly requested (not auto-detected).
    """
    if cli_flag is not None:
        return (cli_flag, cli_flag)

    env_color = _os.environ.get("PROPSERVER_COLOR")
    if env_color is not None:
        enabled = env_color.lower() in ("1", "true", "yes", "on")
        return (enabled, enabled)

    if _os.environ.get("NO_COLOR") is not None:
        return (False, False)

    return (_sys.stdout.isatty(), False)


def _print_syntax(text: str, lexer: str, *, color: bool, force_color: bool) -> None:
    """Print YAML or JSON text, optionally with syntax highlighting."""
    if not color:
        _click.echo(text.rstrip("\n"))
        return

    import rich.console as _rich_console
    import rich.syntax as _rich_syntax

    console = _rich_console.Console(
        force_terminal=force_color,
        no_color=False if force_color else None,
        color_system="truecolor" if force_color else "auto",
    )
    console.print(_rich_syntax.Syntax(text, lexer, theme="monokai", background_color="default"))


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(propserver.__version__, "-v", "--version", prog_name="propserver")
@_click.option("--verbose", is_flag=True, help="Enable debug logging")
@_click.pass_context
def cli(ctx: _click.Context, verbose: bool) -> None:
    """
    propserver - serve configuration from a git repository as YAML.

    \b
    Examples:
        propserver serve                          # Run the HTTP server
        propserver render wallet-api dev          # Print merged YAML
        propserver render wallet-api dev --label release-1.2
        propserver config show                    # Show effective settings
    """
    try:
        settings = config.Settings()
    except config.ConfigFileError as e:
        raise _click.ClickException(str(e)) from None
    except _pydantic.ValidationError as e:
        raise _click.ClickException(f"Invalid configuration:\n{e}") from None

    _configure_logging(settings, verbose)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose


@cli.command()
@_click.option("--host", type=str, default=None, help="Bind address (default: server.host)")
@_click.option("--port", type=int, default=None, help="Bind port (default: server.port)")
@_click.pass_context
def serve(ctx: _click.Context, host: str | None, port: int | None) -> None:
    """Run the HTTP server."""
    import uvicorn as _uvicorn

    import propserver.server as server

    settings: config.Settings = ctx.obj["settings"]
    try:
        app = server.create_app(settings)
    except repository.RepositoryError as e:
        raise _click.ClickException(str(e)) from None

    _uvicorn.run(
        app,
        host=host or settings.server.host,
        port=port or settings.server.port,
        log_level=settings.logging.level,
    )


@cli.command(name="render")
@_click.argument("service")
@_click.argument("env")
@_click.option(
    "--label",
    type=str,
    default=None,
    help="Branch, tag or commit (default: repository.default_label)",
)
@_click.option("--strict", is_flag=True, help="Fail on colliding keys instead of last-writer-wins")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.option(
    "--color/--no-color",
    "use_color",
    default=None,
    help="Enable/disable syntax highlighting (default: auto-detect TTY)",
)
@_click.pass_context
def render_cmd(
    ctx: _click.Context,
    service: str,
    env: str,
    label: str | None,
    strict: bool,
    as_json: bool,
    use_color: bool | None,
) -> None:
    """Print the merged configuration for SERVICE in ENV.

    Reads SERVICE/application-ENV.yaml (over SERVICE/application.yaml)
    from the configured repository.
    """
    settings: config.Settings = ctx.obj["settings"]
    builder = tree.HierarchyBuilder(strict=strict or settings.output.strict)

    try:
        resolve = resolver.ConfigResolver(repository.create_repository(settings), builder)
        node = resolve.resolve(service, env, label)
    except (resolver.ConfigNotFoundError, repository.RepositoryError, tree.KeyCollisionError) as e:
        raise _click.ClickException(str(e)) from None

    color_enabled, force_color = _should_use_color(use_color)
    if as_json:
        _print_syntax(
            render.to_json(node, indent=settings.output.indent),
            "json",
            color=color_enabled,
            force_color=force_color,
        )
    else:
        _print_syntax(
            render.to_yaml(node, indent=settings.output.indent),
            "yaml",
            color=color_enabled,
            force_color=force_color,
        )


@cli.group(invoke_without_command=True)
@_click.pass_context
def config_cmd(ctx: _click.Context) -> None:
    """Configuration management commands.

    Without a subcommand, shows configuration overview.
    """
    if ctx.invoked_subcommand is None:
        settings: config.Settings = ctx.obj["settings"]
        _click.echo("propserver Configuration:")
        _click.echo(f"  Backend: {settings.repository.backend}")
        _click.echo(f"  Repository: {settings.repository.uri or '(not set)'}")
        _click.echo(f"  Default Label: {settings.repository.default_label}")
        _click.echo(f"  Listen: {settings.server.host}:{settings.server.port}")
        _click.echo(f"  Context Path: {settings.server.context_path or '/'}")
        _click.echo(f"  Config Dir: {settings.config_dir}")
        _click.echo("\nRun 'propserver config show' for full configuration details.")


# Register config_cmd with the name "config" to avoid shadowing the module
cli.add_command(config_cmd, name="config")


@config_cmd.command(name="show")
@_click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@_click.option("--section", type=str, default=None, help="Show specific section only")
@_click.option(
    "--color/--no-color",
    "use_color",
    default=None,
    help="Enable/disable syntax highlighting (default: auto-detect TTY)",
)
@_click.pass_context
def config_show(
    ctx: _click.Context,
    as_json: bool,
    section: str | None,
    use_color: bool | None,
) -> None:
    """Show effective configuration from all sources.

    \b
    Examples:
        propserver config show                     # All settings as YAML
        propserver config show --json              # As JSON
        propserver config show --section server    # One section
    """
    settings: config.Settings = ctx.obj["settings"]
    full_config = settings.to_display_dict()

    if section:
        if section not in full_config:
            raise _click.ClickException(f"Unknown section: {section}")
        full_config = {section: full_config[section]}

    color_enabled, force_color = _should_use_color(use_color)
    if as_json:
        _print_syntax(
            _json.dumps(full_config, indent=2),
            "json",
            color=color_enabled,
            force_color=force_color,
        )
    else:
        _print_syntax(
            _yaml.safe_dump(full_config, default_flow_style=False, sort_keys=False),
            "yaml",
            color=color_enabled,
            force_color=force_color,
        )


@config_cmd.command(name="path")
@_click.option("--all", "show_all", is_flag=True, help="Show all paths even if not found")
def config_path(show_all: bool) -> None:
    """Show configuration file paths and their status.

    \b
    Examples:
        propserver config path        # Show existing config files
        propserver config path --all  # Show all possible paths
    """
    paths = [
        ("Built-in defaults", config_sources.get_builtin_defaults_path()),
        ("User config", config_sources.get_user_config_path()),
    ]
    extra = config_sources.get_extra_config_path()
    if extra is not None:
        paths.append(("Config file", extra))

    for name, path in paths:
        exists = path.exists()
        if exists or show_all:
            status = "✓" if exists else "✗"
            _click.echo(f"{status} {name}: {path}")


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="propserver")


if __name__ == "__main__":
    main()
