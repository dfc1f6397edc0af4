"""Builtin extensions.

Every public module in this package exposes a ``PLUGIN_MANIFEST`` (one
manifest or a list of them) that the default extension registry discovers.
"""
