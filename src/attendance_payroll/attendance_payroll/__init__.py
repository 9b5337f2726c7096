"""Attendance & Payroll package.

Feature modules (device_link, identity, attendance, periods, payroll, sync, ...)
sit behind a thin Flask controller layer; services depend on repository
interfaces and a unit of work, never on a concrete database.
"""
