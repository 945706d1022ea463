"""Notification domain layer.

Pure business rules: no I/O, no logging. Wall-clock reads go through an
injected ``Clock``.
"""
