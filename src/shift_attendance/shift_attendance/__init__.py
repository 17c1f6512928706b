"""Shift attendance package.

Organized by feature modules (attendance, reconciliation, schedules, ...)
with a thin Flask controller layer on top of service/repository layers.
"""
