"""Shell integration emitted by ``jnav init``.

A child process cannot change its parent's directory, so the generated ``j``
function runs ``jnav jump`` and performs the ``cd`` itself when the output is
a directory. The post-change hook (zsh ``chpwd``, bash ``PROMPT_COMMAND``)
keeps the session's previous directory and runs ``jnav track`` in the
background so the prompt never waits on the store.
"""

from __future__ import annotations

import shlex
from textwrap import dedent

from jnav.core.result import ConfigurationError, Err, Ok, Result

SUPPORTED_SHELLS = ("bash", "zsh")

_FUNCTION = dedent(
    """
    __CMD__() {
        local __jnav_out __jnav_status
        __jnav_out="$(JNAV_PREV_DIR="${__jnav_prev}" command __BIN__ jump "$@")"
        __jnav_status=$?
        if [[ ${__jnav_status} -eq 0 && -n "${__jnav_out}" && "${__jnav_out}" != *$'\\n'* && -d "${__jnav_out}" ]]; then
            if [[ "${__jnav_out}" != "${PWD}" ]]; then
                # Already recorded by jump; the hook must not count it twice.
                __jnav_skip=1
                builtin cd -- "${__jnav_out}" || { __jnav_skip=""; return 1; }
            fi
        elif [[ -n "${__jnav_out}" ]]; then
            printf '%s\\n' "${__jnav_out}"
        fi
        return ${__jnav_status}
    }
    """
)

_ZSH_HOOK = dedent(
    """
    # jnav shell integration (zsh)
    typeset -g __jnav_prev=""
    typeset -g __jnav_last="${PWD}"
    typeset -g __jnav_skip=""

    __jnav_hook() {
        [[ "${PWD}" == "${__jnav_last}" ]] && return 0
        __jnav_prev="${__jnav_last}"
        __jnav_last="${PWD}"
        if [[ -z "${__jnav_skip}" ]]; then
            ( command __BIN__ track -- "${PWD}" ) >/dev/null 2>&1 &!
        fi
        __jnav_skip=""
    }

    autoload -Uz add-zsh-hook
    add-zsh-hook chpwd __jnav_hook
    """
)

_BASH_HOOK = dedent(
    """
    # jnav shell integration (bash)
    __jnav_prev=""
    __jnav_last="${PWD}"
    __jnav_skip=""

    __jnav_hook() {
        local __jnav_rc=$?
        if [[ "${PWD}" != "${__jnav_last}" ]]; then
            __jnav_prev="${__jnav_last}"
            __jnav_last="${PWD}"
            if [[ -z "${__jnav_skip}" ]]; then
                ( command __BIN__ track -- "${PWD}" & ) >/dev/null 2>&1
            fi
            __jnav_skip=""
        fi
        return ${__jnav_rc}
    }

    if [[ ";${PROMPT_COMMAND:-};" != *";__jnav_hook;"* ]]; then
        PROMPT_COMMAND="__jnav_hook${PROMPT_COMMAND:+;${PROMPT_COMMAND}}"
    fi
    """
)


def render_init(
    shell: str,
    *,
    command: str = "j",
    binary: str = "jnav",
    alias_p: bool = False,
) -> Result[str, ConfigurationError]:
    """Shell source defining ``command`` and the post-cd hook for ``shell``."""
    name = shell.strip().lower()
    if name not in SUPPORTED_SHELLS:
        return Err(
            ConfigurationError(
                f"Unsupported shell: {shell}",
                context={"supported": ", ".join(SUPPORTED_SHELLS)},
            )
        )
    if not command.isidentifier():
        return Err(ConfigurationError(f"Invalid function name: {command}"))

    hook = _ZSH_HOOK if name == "zsh" else _BASH_HOOK
    parts = [hook.strip(), _FUNCTION.strip()]
    if alias_p and command != "p":
        parts.append(f"alias p='{command}'")

    script = "\n\n".join(parts) + "\n"
    return Ok(script.replace("__BIN__", shlex.quote(binary)).replace("__CMD__", command))


__all__ = ["SUPPORTED_SHELLS", "render_init"]
