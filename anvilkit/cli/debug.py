from functools import wraps

import click

from .utils.logging import configure_logging


def _debug_option() -> click.Option:
    return click.Option(
        ["--debug/--no-debug"],
        is_eager=True,
        expose_value=False,
        callback=lambda ctx, param, value: _set_debug(ctx, value),
        help="Enable debug mode",
    )


def add_debug_option(cmd):
    """Decorator to add debug option to commands and groups"""
    if isinstance(cmd, click.Command):
        if not any(param.name == "debug" for param in cmd.params):
            cmd.params.insert(0, _debug_option())
        return cmd

    @wraps(cmd)
    def wrapper(*args, **kwargs):
        return cmd(*args, **kwargs)

    wrapper.__click_params__ = getattr(cmd, "__click_params__", []) + [_debug_option()]
    return wrapper


def _set_debug(ctx, value: bool):
    """
    Record the debug flag on the root context.

    A subcommand may switch debug on, but only the top level can switch it
    off again, so ``anvil --debug build --no-debug`` stays verbose.
    """
    root_ctx = ctx.find_root()
    root_ctx.ensure_object(dict)
    root_ctx.obj.setdefault("DEBUG", False)

    if value is True or ctx.parent is None:
        root_ctx.obj["DEBUG"] = value

    configure_logging(root_ctx.obj["DEBUG"])
    return root_ctx.obj["DEBUG"]
