"""Exam engine services."""
