"""Routing — template compiler, matcher, and ordered dispatch table.

Templates are compiled when they are mapped and frozen into an immutable
table before the first message is dispatched.
"""
