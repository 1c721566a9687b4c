"""Timekeeping engine package.

This package is organized by feature modules (attendance, aggregation,
reports, ...) with a thin Flask controller layer on top of plain
service/repository layers.
"""
