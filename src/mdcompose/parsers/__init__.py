"""Builtin parser backends.

Every public module in this package exposes a ``PLUGIN_MANIFEST`` that
the default parser registry discovers.
"""
