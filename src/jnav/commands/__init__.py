"""Typer command implementations registered by :mod:`jnav.main`."""
