"""Shell integration setup.

Provides the ``init`` command, which prints the ``j`` function and the
post-cd tracking hook for a shell. Add to your rc file:

    eval "$(jnav init zsh)"
"""

from __future__ import annotations

import typer
from rich.markup import escape

from jnav.core.console import stderr_console
from jnav.core.result import Err, Ok
from jnav.core.shell import SUPPORTED_SHELLS, render_init


def init(
    shell: str = typer.Argument(..., help=f"Target shell ({', '.join(SUPPORTED_SHELLS)})."),
    cmd: str = typer.Option("j", "--cmd", help="Name of the jump function to define."),
    alias_p: bool = typer.Option(
        False, "--alias-p/--no-alias-p", help="Also define 'p' as an alias for the jump function."
    ),
    binary: str = typer.Option("jnav", "--binary", help="Executable the shell code invokes."),
) -> None:
    """Print shell integration code for eval in your shell rc file."""
    match render_init(shell, command=cmd, binary=binary, alias_p=alias_p):
        case Ok(script):
            typer.echo(script, nl=False)
        case Err(err):
            stderr_console.print(f"[red]{escape(str(err))}[/red]")
            raise typer.Exit(code=1)
